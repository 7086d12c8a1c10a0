"""
storefront/core/errors.py - Error taxonomy for storefront actions and its HTTP mapping.

Every action converts failures into a JSON response through `handle_error`:
  - ValidationError           400  malformed/missing input, raised before any backend call
  - OwnershipMismatchError    400  anonymous order read for a cart that is not the session's
  - AuthenticationRequiredError 401
  - ExternalSystemError       upstream status (503 if unknown), upstream message/body verbatim
  - UnhandledError (anything else) 500  generic response, details only in the log
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from fastapi.routing import APIRoute

logger = logging.getLogger("storefront.errors")


class StorefrontError(Exception):
    """Base exception for all storefront errors."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    error_code: Optional[str] = None

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        body: Any = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if error_code is not None:
            self.error_code = error_code
        self.body = body


class ValidationError(StorefrontError):
    """Raised when the request is malformed or misses a required field."""

    error_code = "validation_error"


class OwnershipMismatchError(StorefrontError):
    """Raised when an anonymous shopper asks for an order that is not tied to their cart."""

    error_code = "cart_not_match_order"

    def __init__(self, message: str = "Order does not match the current cart."):
        super().__init__(message)


class AuthenticationRequiredError(StorefrontError):
    """Raised when an action needs a logged-in account and the session has none."""

    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "authentication_required"

    def __init__(self, message: str = "Not logged in."):
        super().__init__(message)


class ExternalSystemError(StorefrontError):
    """Raised when the commerce backend or a notification provider rejects a call."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error_code = "external_system_error"


class VersionConflictError(ExternalSystemError):
    """Raised when a version-checked update lost against a concurrent write."""

    status_code = status.HTTP_409_CONFLICT
    error_code = "ConcurrentModification"

    def __init__(self, resource: str, resource_id: str, version: Optional[int], body: Any = None):
        self.resource = resource
        self.resource_id = resource_id
        self.version = version
        super().__init__(
            f"{resource} {resource_id} was modified concurrently (sent version {version}).",
            body=body,
        )


class NotificationError(ExternalSystemError):
    """Raised when the order confirmation could not be delivered."""

    error_code = "notification_error"


class UnhandledError(StorefrontError):
    """Anything that is not a StorefrontError; details stay in the log."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code = "unhandled_error"

    def __init__(self, message: str = "Internal error"):
        super().__init__(message)


def error_payload(error: StorefrontError) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"message": error.message}
    if error.error_code:
        payload["errorCode"] = error.error_code
    if error.body is not None:
        payload["body"] = error.body
    return payload


def handle_error(error: Exception, request: Optional[Request] = None) -> JSONResponse:
    """Convert any failure raised by an action into its JSON response."""
    path = request.url.path if request is not None else "-"
    if isinstance(error, StorefrontError):
        if isinstance(error, ExternalSystemError):
            logger.warning("External system error on %s: %s %s", path, error.status_code, error.message)
        return JSONResponse(status_code=error.status_code, content=error_payload(error))

    logger.error("Unhandled error on %s", path, exc_info=error)
    unhandled = UnhandledError()
    return JSONResponse(status_code=unhandled.status_code, content=error_payload(unhandled))


def _describe_validation(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts) or "Invalid request"


class ActionRoute(APIRoute):
    """Route class that turns every failure of an action into its error response."""

    def get_route_handler(self) -> Callable:
        original_route_handler = super().get_route_handler()

        async def action_route_handler(request: Request) -> Response:
            try:
                return await original_route_handler(request)
            except RequestValidationError as exc:
                return handle_error(ValidationError(_describe_validation(exc)), request)
            except HTTPException:
                raise
            except Exception as exc:
                return handle_error(exc, request)

        return action_route_handler
