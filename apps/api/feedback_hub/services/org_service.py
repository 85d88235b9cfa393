"""Organization service - create, edit and search organizations."""

import logging
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, defer

from feedback_hub.core import policies
from feedback_hub.core.errors import ConflictError, ForbiddenError, NotFoundError
from feedback_hub.core.policies import DenyReason
from feedback_hub.core.structured_logging import build_log_context
from feedback_hub.db.models import Organization
from feedback_hub.schemas.org import OrganizationCreate, OrganizationUpdate

logger = logging.getLogger(__name__)

MAX_SEARCH_LIMIT = 20


class OrganizationNotFoundError(NotFoundError):
    """Organization not found."""

    default_detail = "Organization not found"


class OrganizationQuotaExceededError(ForbiddenError):
    """User already owns an organization."""

    default_detail = "You have already created an organization"

    def __init__(self, detail: str | None = None):
        super().__init__(detail, reason=DenyReason.QUOTA_EXCEEDED.value)


class OrganizationConflictError(ConflictError):
    """A concurrent request created the user's organization first."""

    default_detail = "You have already created an organization"


def get_organization(db: Session, org_id: UUID) -> Organization | None:
    """Get organization by ID (includes image)."""
    return db.get(Organization, org_id)


def get_organization_for_owner(db: Session, user_id: UUID) -> Organization | None:
    """Get the organization a user owns, if any."""
    return db.execute(
        select(Organization).where(Organization.created_by == user_id)
    ).scalar_one_or_none()


def count_owned_organizations(db: Session, user_id: UUID) -> int:
    return db.execute(
        select(func.count()).select_from(Organization).where(Organization.created_by == user_id)
    ).scalar_one()


def search_organizations(
    db: Session,
    q: str | None = None,
    created_by: UUID | None = None,
    limit: int = MAX_SEARCH_LIMIT,
) -> list[Organization]:
    """
    Case-insensitive substring search over name and description.

    Newest first; the image column is not loaded.
    """
    query = select(Organization).options(defer(Organization.image))
    term = (q or "").strip().lower()
    if term:
        query = query.where(
            or_(
                Organization.name_lower.contains(term, autoescape=True),
                func.lower(Organization.description).contains(term, autoescape=True),
            )
        )
    if created_by is not None:
        query = query.where(Organization.created_by == created_by)
    limit = max(1, min(limit, MAX_SEARCH_LIMIT))
    query = query.order_by(Organization.created_at.desc()).limit(limit)
    return list(db.execute(query).scalars().all())


def create_organization(
    db: Session,
    user_id: UUID,
    data: OrganizationCreate,
) -> Organization:
    """
    Create the caller's organization.

    Raises:
        OrganizationQuotaExceededError: Caller already owns one
        OrganizationConflictError: A concurrent create won the unique index
    """
    decision = policies.can_create_organization(user_id, count_owned_organizations(db, user_id))
    if decision.reason is DenyReason.QUOTA_EXCEEDED:
        raise OrganizationQuotaExceededError()
    policies.enforce(decision)

    org = Organization(
        description=data.description,
        website=data.website,
        github=data.github,
        image=data.image,
        created_by=user_id,
    )
    org.rename(data.name)
    db.add(org)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info(
            "Organization create lost race on created_by",
            extra=build_log_context(user_id=user_id),
        )
        raise OrganizationConflictError()
    db.refresh(org)
    logger.info("Organization created", extra=build_log_context(user_id=user_id, org_id=org.id))
    return org


def update_organization(
    db: Session,
    user_id: UUID,
    org_id: UUID,
    data: OrganizationUpdate,
) -> Organization:
    """
    Replace an organization's editable fields (owner only).

    Raises:
        OrganizationNotFoundError: Unknown org_id
        ForbiddenError: Caller is not the owner
    """
    org = get_organization(db, org_id)
    policies.enforce(
        policies.can_edit_organization(user_id, org),
        not_found=OrganizationNotFoundError,
    )

    org.rename(data.name)
    org.description = data.description
    org.website = data.website
    org.github = data.github
    if data.image:
        org.image = data.image

    db.commit()
    db.refresh(org)
    logger.info("Organization updated", extra=build_log_context(user_id=user_id, org_id=org.id))
    return org
