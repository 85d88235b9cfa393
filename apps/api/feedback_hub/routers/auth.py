"""Authentication router: current identity and logout.

Sign-in itself happens at the external identity provider, which sets the
session cookie; /dev/login stands in for it locally.
"""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from feedback_hub.core.deps import COOKIE_NAME, get_current_user, get_db, require_csrf_header
from feedback_hub.schemas.auth import CurrentUser, MeResponse
from feedback_hub.services import org_service

router = APIRouter()


@router.get("/me")
def get_me(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> MeResponse:
    """
    Get current authenticated user info.

    Used by the frontend to bootstrap auth state on page load.
    """
    org = org_service.get_organization_for_owner(db, user.user_id)
    return MeResponse(
        user_id=user.user_id,
        email=user.email,
        display_name=user.display_name,
        organization_id=org.id if org else None,
    )


@router.post("/logout", dependencies=[Depends(require_csrf_header)])
def logout(response: Response):
    """
    Clear session cookie.

    Requires X-Requested-With header for CSRF protection.
    """
    response.delete_cookie(COOKIE_NAME, path="/")
    return {"status": "logged_out"}
