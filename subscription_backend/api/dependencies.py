"""FastAPI dependencies and shared response helpers."""

from typing import Optional

from fastapi import Depends, Header, Request
from fastapi.responses import JSONResponse

from subscription_backend.models import ErrorResponse
from subscription_backend.services.auth import Identity
from subscription_backend.services.container import BillingServices


def get_services(request: Request) -> BillingServices:
    """Service bundle attached to the app at creation time."""
    return request.app.state.services


def require_identity(
    authorization: Optional[str] = Header(None),
    services: BillingServices = Depends(get_services),
) -> Identity:
    """Verify the caller's bearer token.

    Raises:
        AuthenticationError: Turned into a 401 by the app's exception handler
    """
    return services.authenticator.authenticate(authorization)


def error_response(status_code: int, message: str) -> JSONResponse:
    """JSON error body shared by every endpoint."""
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(exclude_none=True),
    )
