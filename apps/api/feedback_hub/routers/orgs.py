"""Organizations router - create, edit, search, triage and summarize."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from feedback_hub.core.deps import get_current_user, get_db, require_csrf_header
from feedback_hub.core.rate_limit import AI_LIMIT, limiter
from feedback_hub.schemas.ai import BulkTriageResponse, SummaryResponse
from feedback_hub.schemas.auth import CurrentUser
from feedback_hub.schemas.org import (
    OrganizationCreate,
    OrganizationListItem,
    OrganizationListResponse,
    OrganizationRead,
    OrganizationUpdate,
)
from feedback_hub.services import org_service, triage_service
from feedback_hub.services.inference_provider import InferenceProvider, get_inference_provider

router = APIRouter()


@router.get("", response_model=OrganizationListResponse)
def list_organizations(
    db: Session = Depends(get_db),
    q: str | None = Query(None, max_length=100, description="Search in name and description"),
    created_by: UUID | None = None,
    limit: int = Query(org_service.MAX_SEARCH_LIMIT, ge=1, le=org_service.MAX_SEARCH_LIMIT),
):
    """Public organization search (newest first, no images)."""
    orgs = org_service.search_organizations(db, q=q, created_by=created_by, limit=limit)
    return OrganizationListResponse(
        organizations=[OrganizationListItem.model_validate(org) for org in orgs]
    )


@router.post(
    "",
    response_model=OrganizationRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_organization(
    data: OrganizationCreate,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create the caller's organization (one per user)."""
    org = org_service.create_organization(db, user.user_id, data)
    return OrganizationRead.model_validate(org)


@router.get("/mine", response_model=OrganizationRead)
def get_my_organization(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """The organization the caller owns."""
    org = org_service.get_organization_for_owner(db, user.user_id)
    if not org:
        raise HTTPException(status_code=404, detail="You have not created an organization")
    return OrganizationRead.model_validate(org)


@router.get("/{org_id}", response_model=OrganizationRead)
def get_organization(org_id: UUID, db: Session = Depends(get_db)):
    """Organization detail (includes image)."""
    org = org_service.get_organization(db, org_id)
    if not org:
        raise org_service.OrganizationNotFoundError()
    return OrganizationRead.model_validate(org)


@router.patch(
    "/{org_id}",
    response_model=OrganizationRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_organization(
    org_id: UUID,
    data: OrganizationUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Edit an organization (owner only)."""
    org = org_service.update_organization(db, user.user_id, org_id, data)
    return OrganizationRead.model_validate(org)


@router.post(
    "/{org_id}/triage",
    response_model=BulkTriageResponse,
    dependencies=[Depends(require_csrf_header)],
)
@limiter.limit(AI_LIMIT)
async def triage_organization(
    request: Request,
    org_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    provider: InferenceProvider = Depends(get_inference_provider),
):
    """AI-assign priority and type to every ticket of the organization."""
    return await triage_service.triage_organization(db, provider, user.user_id, org_id)


@router.post(
    "/{org_id}/summary",
    response_model=SummaryResponse,
    dependencies=[Depends(require_csrf_header)],
)
@limiter.limit(AI_LIMIT)
async def summarize_organization(
    request: Request,
    org_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    provider: InferenceProvider = Depends(get_inference_provider),
):
    """AI narrative summary of the organization's tickets."""
    return await triage_service.summarize_organization(db, provider, user.user_id, org_id)
