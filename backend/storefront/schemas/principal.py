"""
storefront/schemas/principal.py
Roles and the Principal resolved from a Firebase ID token.
"""
from typing import Literal, Optional

from pydantic import BaseModel, Field

Role = Literal["guest", "user", "admin"]


class Principal(BaseModel):
    uid: str = Field(..., description="Firebase UID")
    role: Role = Field(..., description="guest | user | admin")
    email: Optional[str] = Field(None, description="E-mail (if any)")
    display_name: Optional[str] = Field(None, description="Display name (if any)")
    customer_id: Optional[str] = Field(None, description="Commerce backend customer id claim")

    @property
    def account_id(self) -> Optional[str]:
        """Account the commerce backend knows this shopper by; None for guests."""
        if self.role == "guest":
            return None
        return self.customer_id or self.uid
