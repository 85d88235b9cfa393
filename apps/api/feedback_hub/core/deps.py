"""FastAPI dependencies for authentication and database access."""

import logging
from typing import Generator

import jwt
from fastapi import Depends, HTTPException, Request
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from feedback_hub.core.security import decode_session_token
from feedback_hub.db.session import SessionLocal
from feedback_hub.schemas.auth import CurrentUser, TokenPayload

logger = logging.getLogger(__name__)

# Cookie and header names
COOKIE_NAME = "feedback_session"
CSRF_HEADER = "X-Requested-With"
CSRF_HEADER_VALUE = "XMLHttpRequest"


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _read_session(request: Request) -> TokenPayload | None:
    """Decode the session cookie; None when absent or invalid."""
    token = request.cookies.get(COOKIE_NAME)
    if not token:
        return None
    try:
        return TokenPayload.model_validate(decode_session_token(token))
    except (jwt.InvalidTokenError, PydanticValidationError) as e:
        logger.info(f"Rejected session token: {e}")
        return None


def _sync_identity(db: Session, payload: TokenPayload) -> CurrentUser:
    # Import here to avoid circular imports
    from feedback_hub.services import user_service

    user = user_service.sync_user(
        db,
        payload.sub,
        payload.email,
        first_name=payload.first_name,
        last_name=payload.last_name,
    )
    return CurrentUser(
        user_id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
    )


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
) -> CurrentUser:
    """
    Get authenticated user from session cookie.

    The local users row is created or refreshed from the token claims.

    Raises:
        HTTPException 401: Authentication failed
    """
    if not request.cookies.get(COOKIE_NAME):
        raise HTTPException(status_code=401, detail="Not authenticated")
    payload = _read_session(request)
    if payload is None:
        raise HTTPException(status_code=401, detail="Invalid session")
    return _sync_identity(db, payload)


def get_optional_user(
    request: Request,
    db: Session = Depends(get_db),
) -> CurrentUser | None:
    """Like get_current_user, but anonymous callers get None instead of 401."""
    payload = _read_session(request)
    if payload is None:
        return None
    return _sync_identity(db, payload)


def require_csrf_header(request: Request) -> None:
    """
    Verify CSRF header on mutations.

    Apply to state-changing endpoints (POST, PATCH, DELETE).

    Raises:
        HTTPException 403: Missing or invalid CSRF header
    """
    if request.headers.get(CSRF_HEADER) != CSRF_HEADER_VALUE:
        raise HTTPException(
            status_code=403,
            detail=f"Missing CSRF header. Include '{CSRF_HEADER}: {CSRF_HEADER_VALUE}'",
        )
