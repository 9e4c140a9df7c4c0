"""Caller authentication via Firebase ID tokens."""

from typing import Callable, Optional

from firebase_admin import auth as firebase_auth
from pydantic import BaseModel, Field

from subscription_backend.logging_config import get_logger

logger = get_logger(__name__)

BEARER_PREFIX = "Bearer "


class AuthenticationError(Exception):
    """Raised when a request carries no valid credential."""

    pass


class Identity(BaseModel):
    """Verified caller identity."""

    owner_id: str = Field(..., description="Firebase uid")
    email: Optional[str] = Field(None, description="Email claim, when present")


def extract_bearer_token(authorization: Optional[str]) -> str:
    """Pull the token out of an ``Authorization: Bearer <token>`` header.

    Raises:
        AuthenticationError: If the header is missing or not a bearer credential
    """
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise AuthenticationError("Unauthorized")
    token = authorization[len(BEARER_PREFIX):].strip()
    if not token:
        raise AuthenticationError("Unauthorized")
    return token


class FirebaseAuthenticator:
    """Verifies bearer tokens with Firebase Auth.

    Args:
        app: Firebase app to verify against (defaults to the default app)
        verify_id_token: Token verifier, replaceable for tests
    """

    def __init__(self, app=None, verify_id_token: Optional[Callable[..., dict]] = None):
        self._app = app
        self._verify_id_token = verify_id_token or firebase_auth.verify_id_token

    def authenticate(self, authorization: Optional[str]) -> Identity:
        """Verify the Authorization header and return the caller's identity.

        Raises:
            AuthenticationError: If the token is missing, malformed, expired or revoked
        """
        token = extract_bearer_token(authorization)
        try:
            claims = self._verify_id_token(token, app=self._app)
        except (ValueError, firebase_auth.InvalidIdTokenError, firebase_auth.CertificateFetchError) as e:
            logger.warning("auth_token_rejected", error_type=type(e).__name__)
            raise AuthenticationError("Invalid token") from e
        except firebase_auth.UserDisabledError as e:
            logger.warning("auth_user_disabled")
            raise AuthenticationError("Invalid token") from e

        owner_id = claims.get("uid") or claims.get("sub")
        if not owner_id:
            raise AuthenticationError("Invalid token")
        return Identity(owner_id=owner_id, email=claims.get("email"))
