"""
Bearer token handling.

Access tokens are HS256 JWTs signed with the shared secret. The subject
claim carries the user id; the issuer is fixed so tokens minted for
other purposes are rejected.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Mapping
from uuid import UUID

from jose import JWTError, jwt

from src.core.videos.errors import UnauthorizedError

logger = logging.getLogger(__name__)

TOKEN_ISSUER = "tubely-access"
ALGORITHM = "HS256"
DEFAULT_EXPIRY = timedelta(hours=1)


def get_bearer_token(headers: Mapping[str, str]) -> str:
    """Pull the token out of an "Authorization: Bearer <token>" header."""
    auth_header = headers.get("authorization") or headers.get("Authorization")
    if not auth_header:
        raise UnauthorizedError("Couldn't find authorization header")

    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise UnauthorizedError("Malformed authorization header")

    return parts[1]


def make_jwt(
    user_id: UUID,
    secret: str,
    expires_in: timedelta = DEFAULT_EXPIRY,
) -> str:
    """Create a signed access token for user_id."""
    now = datetime.now(timezone.utc)
    payload = {
        "iss": TOKEN_ISSUER,
        "sub": str(user_id),
        "iat": now,
        "exp": now + expires_in,
    }
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def validate_jwt(token: str, secret: str) -> UUID:
    """
    Verify a token and return the user id it was issued to.

    Raises:
        UnauthorizedError: bad signature, expired, wrong issuer or
            a subject that isn't a UUID
    """
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[ALGORITHM],
            issuer=TOKEN_ISSUER,
        )
    except JWTError as e:
        logger.warning("Rejected access token", extra={"error": str(e)})
        raise UnauthorizedError("Invalid token")

    try:
        return UUID(payload.get("sub", ""))
    except (TypeError, ValueError):
        raise UnauthorizedError("Invalid user ID in token")


def authenticate(headers: Mapping[str, str], secret: str) -> UUID:
    """Extract and validate the bearer token from request headers."""
    return validate_jwt(get_bearer_token(headers), secret)
