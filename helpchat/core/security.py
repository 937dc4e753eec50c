"""Access-token utilities.

Tokens are issued by the external auth service and arrive in a cookie.
This module only decodes them; ``create_access_token`` exists for
local tooling and tests that need a valid caller identity.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from helpchat.core.config import settings
from helpchat.core.exceptions import UnauthorizedError


def create_access_token(
    user_id: uuid.UUID,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed access token whose subject is the user id."""
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=15))
    to_encode: dict[str, Any] = {"sub": str(user_id), "exp": expire}
    return jwt.encode(
        to_encode,
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


def decode_access_token(token: str) -> uuid.UUID:
    """Decode an access token and return the caller's user id.

    Raises UnauthorizedError for bad signatures, expired tokens, and
    tokens whose subject is not a UUID.
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as e:
        raise UnauthorizedError("Invalid or expired access token") from e

    subject = payload.get("sub") or payload.get("id")
    if not subject:
        raise UnauthorizedError("Access token has no subject")
    try:
        return uuid.UUID(str(subject))
    except ValueError as e:
        raise UnauthorizedError("Access token subject is not a user id") from e
