"""Session token helpers.

Tokens are minted by the identity provider; this service verifies them.
create_session_token exists for the dev login endpoint, the CLI and tests.
"""

from datetime import datetime, timedelta, timezone
from uuid import UUID

import jwt

from feedback_hub.core.config import settings


def create_session_token(
    user_id: UUID,
    email: str,
    first_name: str | None = None,
    last_name: str | None = None,
) -> str:
    """
    Create signed session JWT.

    Always signs with current secret (JWT_SECRET).
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "email": email,
        "first_name": first_name,
        "last_name": last_name,
        "iat": now,
        "exp": now + timedelta(hours=settings.JWT_EXPIRES_HOURS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm="HS256")


def decode_session_token(token: str) -> dict:
    """
    Decode and verify session JWT.

    Tries current secret first, then previous (for rotation support).

    Raises:
        jwt.InvalidTokenError: If token invalid with all secrets
    """
    last_error: jwt.InvalidTokenError | None = None
    for secret in settings.jwt_secrets:
        try:
            return jwt.decode(token, secret, algorithms=["HS256"])
        except jwt.InvalidTokenError as e:
            last_error = e
            continue
    raise last_error  # type: ignore[misc]
