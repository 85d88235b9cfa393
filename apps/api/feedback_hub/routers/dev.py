"""Development-only endpoints (mounted when ENV=dev)."""

from fastapi import APIRouter, Depends, Header, HTTPException, Response
from sqlalchemy.orm import Session

from feedback_hub.core.config import settings
from feedback_hub.core.deps import COOKIE_NAME, get_db
from feedback_hub.core.security import create_session_token
from feedback_hub.schemas.auth import DevLoginRequest, MeResponse
from feedback_hub.services import org_service, user_service
from feedback_hub.utils.identity import dev_user_id

router = APIRouter()


def _verify_dev_secret(x_dev_secret: str = Header(...)):
    """
    Verify dev secret header.

    Provides an extra layer of protection for dev endpoints
    beyond just the ENV check.
    """
    if not settings.DEV_SECRET or x_dev_secret != settings.DEV_SECRET:
        raise HTTPException(status_code=403, detail="Invalid dev secret")


@router.post("/login", dependencies=[Depends(_verify_dev_secret)])
def dev_login(
    body: DevLoginRequest,
    response: Response,
    db: Session = Depends(get_db),
) -> MeResponse:
    """
    Sign in as any email without the identity provider.

    The user id is derived from the email, so repeated logins map to the
    same account.
    """
    user = user_service.sync_user(
        db,
        dev_user_id(body.email),
        body.email,
        first_name=body.first_name,
        last_name=body.last_name,
    )
    token = create_session_token(user.id, user.email, user.first_name, user.last_name)
    response.set_cookie(
        key=COOKIE_NAME,
        value=token,
        max_age=settings.JWT_EXPIRES_HOURS * 3600,
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
        path="/",
    )
    org = org_service.get_organization_for_owner(db, user.id)
    return MeResponse(
        user_id=user.id,
        email=user.email,
        display_name=user.display_name,
        organization_id=org.id if org else None,
    )
