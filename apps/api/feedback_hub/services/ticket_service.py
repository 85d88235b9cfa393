"""Ticket service - submit, edit, list and delete feedback tickets."""

import logging
from uuid import UUID

from sqlalchemy import case, delete, func, or_, select
from sqlalchemy.orm import Session, defer, joinedload

from feedback_hub.core import policies
from feedback_hub.core.errors import NotFoundError
from feedback_hub.core.structured_logging import build_log_context
from feedback_hub.db.enums import PRIORITY_RANK, TicketSort, TicketStatus, TicketTag
from feedback_hub.db.models import Organization, Ticket, Vote
from feedback_hub.schemas.ticket import TicketCreate, TicketUpdate
from feedback_hub.services.org_service import OrganizationNotFoundError, get_organization

logger = logging.getLogger(__name__)


class TicketNotFoundError(NotFoundError):
    """Ticket not found."""

    default_detail = "Ticket not found"


# =============================================================================
# Reads
# =============================================================================


def get_ticket(db: Session, ticket_id: UUID) -> Ticket | None:
    """Get ticket by ID (includes image and reporter)."""
    return db.execute(
        select(Ticket).options(joinedload(Ticket.reporter)).where(Ticket.id == ticket_id)
    ).scalar_one_or_none()


def _priority_rank():
    return case(
        {priority.value: rank for priority, rank in PRIORITY_RANK.items()},
        value=Ticket.priority,
        else_=len(PRIORITY_RANK),
    )


def list_tickets(
    db: Session,
    organization_id: UUID,
    q: str | None = None,
    tag: TicketTag | None = None,
    sort: TicketSort = TicketSort.NEWEST,
) -> list[Ticket]:
    """
    List an organization's tickets without image payloads.

    q is a case-insensitive substring match over title and description.
    Every sort mode falls back to newest-first for ties.
    """
    query = (
        select(Ticket)
        .options(defer(Ticket.image), joinedload(Ticket.reporter))
        .where(Ticket.organization_id == organization_id)
    )

    term = (q or "").strip().lower()
    if term:
        query = query.where(
            or_(
                func.lower(Ticket.title).contains(term, autoescape=True),
                func.lower(Ticket.description).contains(term, autoescape=True),
            )
        )
    if tag is not None:
        query = query.where(Ticket.tag == tag)

    if sort == TicketSort.MOST_VOTED:
        query = query.order_by(Ticket.votes.desc(), Ticket.created_at.desc())
    elif sort == TicketSort.PRIORITY:
        query = query.order_by(_priority_rank(), Ticket.created_at.desc())
    else:
        query = query.order_by(Ticket.created_at.desc())

    return list(db.execute(query).scalars().all())


def list_tickets_for_reporter(db: Session, user_id: UUID) -> list[Ticket]:
    """Tickets the user submitted across all organizations, newest first."""
    query = (
        select(Ticket)
        .options(defer(Ticket.image), joinedload(Ticket.organization).defer(Organization.image))
        .where(Ticket.reported_by == user_id)
        .order_by(Ticket.created_at.desc())
    )
    return list(db.execute(query).scalars().all())


# =============================================================================
# Writes
# =============================================================================


def create_ticket(db: Session, user_id: UUID, data: TicketCreate) -> Ticket:
    """
    Submit a ticket against an existing organization.

    Raises:
        OrganizationNotFoundError: Unknown organization_id
    """
    org = get_organization(db, data.organization_id)
    policies.enforce(
        policies.can_create_ticket(user_id, org),
        not_found=OrganizationNotFoundError,
    )

    ticket = Ticket(
        organization_id=org.id,
        reported_by=user_id,
        title=data.title,
        description=data.description,
        image=data.image,
        tag=data.tag,
        priority=data.priority,
        status=TicketStatus.OPEN,
        votes=0,
    )
    db.add(ticket)
    db.commit()
    db.refresh(ticket)
    logger.info(
        "Ticket created",
        extra=build_log_context(user_id=user_id, org_id=org.id, ticket_id=ticket.id),
    )
    return ticket


def update_ticket(db: Session, user_id: UUID, ticket_id: UUID, data: TicketUpdate) -> Ticket:
    """
    Partial update of the ticket content (reporter only).

    Raises:
        TicketNotFoundError: Unknown ticket_id
        ForbiddenError: Caller is not the reporter
    """
    ticket = get_ticket(db, ticket_id)
    policies.enforce(policies.can_edit_ticket(user_id, ticket), not_found=TicketNotFoundError)

    for field, value in data.model_dump(exclude_unset=True).items():
        if field == "image" and not value:
            continue
        setattr(ticket, field, value)

    db.commit()
    db.refresh(ticket)
    return ticket


def update_ticket_status(
    db: Session,
    user_id: UUID,
    ticket_id: UUID,
    status: TicketStatus,
) -> Ticket:
    """
    Change status only (owner of the ticket's organization).

    Raises:
        TicketNotFoundError: Unknown ticket_id
        ForbiddenError: Caller does not own the organization
    """
    ticket = get_ticket(db, ticket_id)
    if ticket is None:
        raise TicketNotFoundError()
    org = get_organization(db, ticket.organization_id)
    policies.enforce(
        policies.can_change_ticket_status(user_id, ticket, org),
        not_found=TicketNotFoundError,
    )

    ticket.status = status
    db.commit()
    db.refresh(ticket)
    logger.info(
        f"Ticket status set to {status.value}",
        extra=build_log_context(user_id=user_id, org_id=org.id, ticket_id=ticket.id),
    )
    return ticket


def delete_ticket(db: Session, user_id: UUID, ticket_id: UUID) -> None:
    """
    Delete a ticket and its votes (reporter only).

    Raises:
        TicketNotFoundError: Unknown ticket_id
        ForbiddenError: Caller is not the reporter
    """
    ticket = get_ticket(db, ticket_id)
    policies.enforce(policies.can_edit_ticket(user_id, ticket), not_found=TicketNotFoundError)

    db.execute(delete(Vote).where(Vote.ticket_id == ticket.id))
    db.delete(ticket)
    db.commit()
    logger.info(
        "Ticket deleted",
        extra=build_log_context(user_id=user_id, ticket_id=ticket_id),
    )
