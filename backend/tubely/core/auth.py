"""
Tubely Authentication Module

Bearer-token authentication for the upload and video endpoints. Tokens are
HS256 JWTs signed with the configured secret; the ``sub`` claim carries the
user's UUID and ``iss`` must match the configured issuer.

Usage:
    ```python
    from fastapi import Depends
    from tubely.core.auth import get_current_user_id

    @router.get("/videos")
    async def list_videos(user_id: str = Depends(get_current_user_id)):
        ...
    ```
"""

import logging
from datetime import UTC, datetime, timedelta
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from tubely.config import Settings, get_settings


logger = logging.getLogger(__name__)


# =============================================================================
# Security Scheme
# =============================================================================

# auto_error=False so a missing header yields 401 rather than FastAPI's 403
security = HTTPBearer(
    scheme_name="Bearer",
    description="JWT Bearer token authentication",
    auto_error=False,
)


class AuthenticationError(Exception):
    """Raised when a bearer token is missing, malformed or fails verification."""


# =============================================================================
# Token Creation and Validation
# =============================================================================


def create_access_token(
    user_id: str,
    settings: Settings,
    expires_in: timedelta | None = None,
) -> str:
    """
    Mint an access token for a user.

    Token claims:
    - sub: User ID (UUID string)
    - iss: Configured issuer
    - iat / exp: Issue and expiry timestamps

    Args:
        user_id: The user's UUID string.
        settings: Settings providing the secret, algorithm and issuer.
        expires_in: Token lifetime, defaults to ``jwt_expiration_hours``.

    Returns:
        str: The encoded JWT.
    """
    now = datetime.now(UTC)
    expire = now + (expires_in or timedelta(hours=settings.jwt_expiration_hours))

    payload = {
        "sub": user_id,
        "iss": settings.jwt_issuer,
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def validate_access_token(token: str, settings: Settings) -> str:
    """
    Verify a token and return the user id it was issued to.

    Args:
        token: Encoded JWT.
        settings: Settings providing the secret, algorithm and issuer.

    Returns:
        str: Canonical UUID string of the user.

    Raises:
        AuthenticationError: If the signature, expiry, issuer or subject is invalid.
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
        )
    except JWTError as e:
        logger.warning("Access token validation failed: %s", e)
        raise AuthenticationError("Invalid token") from e

    subject = payload.get("sub")
    if not isinstance(subject, str):
        raise AuthenticationError("Token has no subject")

    try:
        return str(UUID(subject))
    except ValueError as e:
        raise AuthenticationError("Token subject is not a valid user id") from e


def extract_bearer_token(credentials: HTTPAuthorizationCredentials | None) -> str:
    """
    Pull the raw token out of parsed Authorization credentials.

    Raises:
        AuthenticationError: If the header is missing or not a Bearer token.
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Couldn't find JWT")
    if credentials.scheme.lower() != "bearer":
        raise AuthenticationError("Authorization scheme must be Bearer")
    return credentials.credentials


# =============================================================================
# FastAPI Dependencies
# =============================================================================


def _unauthenticated(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error": "unauthenticated", "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    settings: Settings = Depends(get_settings),
) -> str:
    """
    Resolve the authenticated user's id from the Authorization header.

    Raises:
        HTTPException: 401 if the token is missing or invalid.
    """
    try:
        token = extract_bearer_token(credentials)
        return validate_access_token(token, settings)
    except AuthenticationError as e:
        raise _unauthenticated(str(e)) from e
