"""Rate limiting for the feedback API.

AI endpoints are limited per caller: the session subject when a valid
cookie is present, otherwise the client address. Storage is Redis when
reachable (shared across workers) and in-memory otherwise.
"""

import logging
import os

import jwt
from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from feedback_hub.core.config import settings
from feedback_hub.core.deps import COOKIE_NAME
from feedback_hub.core.security import decode_session_token

logger = logging.getLogger(__name__)

REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
IS_TESTING = os.getenv("TESTING", "").lower() in ("1", "true", "yes")

DEFAULT_LIMITS = (
    []
    if IS_TESTING or settings.RATE_LIMIT_API <= 0
    else [f"{settings.RATE_LIMIT_API}/minute"]
)
AI_LIMIT = f"{max(settings.RATE_LIMIT_AI, 1)}/minute"


def caller_key(request: Request) -> str:
    """Session subject when signed in, otherwise the client address."""
    token = request.cookies.get(COOKIE_NAME)
    if token:
        try:
            return f"user:{decode_session_token(token)['sub']}"
        except (jwt.InvalidTokenError, KeyError):
            pass
    return f"ip:{get_remote_address(request)}"


def _storage_uri() -> str:
    if IS_TESTING:
        return "memory://"
    try:
        import redis

        redis.from_url(REDIS_URL, socket_connect_timeout=1).ping()
        return REDIS_URL
    except Exception as e:
        logger.warning(f"Redis unavailable for rate limiting, using in-memory: {e}")
        return "memory://"


limiter = Limiter(
    key_func=caller_key,
    storage_uri=_storage_uri(),
    default_limits=DEFAULT_LIMITS,
    enabled=not IS_TESTING,
)
