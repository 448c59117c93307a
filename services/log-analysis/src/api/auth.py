"""
BugSage - Request Authentication
================================

Resolves the caller from the ``Authorization: Bearer <token>`` header.

Tokens are JWTs issued by the identity provider for the history
database. When ``AUTH_JWT_SECRET`` is set the HS256 signature (and the
audience, if configured) is verified here; otherwise the claims are read
as-is and the database enforces the signature on every history call.
"""

from dataclasses import dataclass
from typing import Optional

import jwt
from fastapi import Depends, Request

from src.config import get_settings, Settings
from src.core.errors import AuthenticationError
from shared.utils.logging import get_logger, set_user_id

logger = get_logger(__name__)


@dataclass(frozen=True)
class AuthenticatedUser:
    """The caller of a request and the token it presented."""
    user_id: str
    token: str


def extract_bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise AuthenticationError("Authentication token is required")

    scheme, _, token = authorization.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise AuthenticationError("Authorization header must be 'Bearer <token>'")

    return token


def decode_token(token: str, settings: Settings) -> dict:
    try:
        if settings.auth_jwt_secret:
            return jwt.decode(
                token,
                settings.auth_jwt_secret,
                algorithms=["HS256"],
                audience=settings.auth_jwt_audience,
                options={"verify_aud": settings.auth_jwt_audience is not None},
            )
        return jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError as e:
        logger.warning(f"Rejected bearer token: {e}")
        raise AuthenticationError("Invalid authentication token") from e


async def get_current_user(
    request: Request,
    settings: Settings = Depends(get_settings)
) -> AuthenticatedUser:
    """FastAPI dependency returning the authenticated caller."""
    token = extract_bearer_token(request.headers.get("Authorization"))
    claims = decode_token(token, settings)

    user_id = claims.get("sub")
    if not user_id:
        raise AuthenticationError("Token has no subject")

    set_user_id(str(user_id))
    return AuthenticatedUser(user_id=str(user_id), token=token)
