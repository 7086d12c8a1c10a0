# storefront/core/auth.py
from typing import Optional

from fastapi import Request
from firebase_admin import auth as fb_auth

from storefront.config import init_firebase
from storefront.core.errors import AuthenticationRequiredError
from storefront.schemas.principal import Principal


def _extract_bearer_token(request: Request) -> Optional[str]:
    """
    Reads the token from `Authorization: Bearer <id_token>`.
    Returns None when there is none.
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None
    parts = auth_header.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    return None


def _decode_id_token(id_token: str) -> dict:
    """
    Firebase ID token verification.
    Invalid/revoked/expired tokens become a 401.
    """
    init_firebase()
    try:
        return fb_auth.verify_id_token(id_token, check_revoked=True)
    except Exception as exc:
        raise AuthenticationRequiredError(f"Invalid Firebase ID token: {exc}")


def _token_to_principal(decoded: dict) -> Principal:
    """
    Builds the Principal from a decoded token.
    - anonymous provider -> role='guest'
    - custom claim admin=True -> role='admin'
    - everyone else -> role='user'
    The `customerId` custom claim links the Firebase user to its commerce backend customer.
    """
    uid = decoded.get("uid") or decoded.get("user_id")
    if not uid:
        raise AuthenticationRequiredError("Token missing uid.")

    firebase_info = decoded.get("firebase") or {}
    provider = firebase_info.get("sign_in_provider")
    is_admin = bool(decoded.get("admin") is True)

    if provider == "anonymous":
        role = "guest"
    elif is_admin:
        role = "admin"
    else:
        role = "user"

    return Principal(
        uid=uid,
        role=role,
        email=decoded.get("email"),
        display_name=decoded.get("name"),
        customer_id=decoded.get("customerId"),
    )


# --------- FastAPI Dependencies --------- #

async def get_optional_principal(request: Request) -> Optional[Principal]:
    """
    Token optional: verified and turned into a Principal when present, None otherwise.
    Every storefront action uses this; anonymous shoppers are first-class.
    """
    token = _extract_bearer_token(request)
    if not token:
        return None
    decoded = _decode_id_token(token)
    return _token_to_principal(decoded)


def account_id_of(principal: Optional[Principal]) -> Optional[str]:
    return principal.account_id if principal is not None else None
