"""Tickets router - submit, browse, edit, triage and vote on tickets."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from feedback_hub.core.deps import (
    get_current_user,
    get_db,
    get_optional_user,
    require_csrf_header,
)
from feedback_hub.core.rate_limit import AI_LIMIT, limiter
from feedback_hub.db.enums import TicketSort, TicketTag
from feedback_hub.db.models import Ticket
from feedback_hub.schemas.ai import TicketTriageResponse
from feedback_hub.schemas.auth import CurrentUser
from feedback_hub.schemas.ticket import (
    OrganizationRef,
    ReporterRead,
    TicketCreate,
    TicketDeleteResponse,
    TicketListItem,
    TicketListResponse,
    TicketRead,
    TicketStatusUpdate,
    TicketUpdate,
    VoteResponse,
    VoteStatusResponse,
)
from feedback_hub.services import ticket_service, triage_service, vote_service
from feedback_hub.services.inference_provider import InferenceProvider, get_inference_provider

router = APIRouter()


def _reporter(ticket: Ticket) -> ReporterRead | None:
    if ticket.reporter is None:
        return None
    return ReporterRead(id=ticket.reporter.id, name=ticket.reporter.display_name)


def _to_list_item(
    ticket: Ticket,
    *,
    voted: bool = False,
    with_organization: bool = False,
) -> TicketListItem:
    organization = None
    if with_organization and ticket.organization is not None:
        organization = OrganizationRef(id=ticket.organization.id, name=ticket.organization.name)
    return TicketListItem(
        id=ticket.id,
        organization_id=ticket.organization_id,
        title=ticket.title,
        description=ticket.description,
        votes=ticket.votes,
        priority=ticket.priority,
        status=ticket.status,
        tag=ticket.tag,
        voted=voted,
        reported_by=None if with_organization else _reporter(ticket),
        organization=organization,
        created_at=ticket.created_at,
        updated_at=ticket.updated_at,
    )


def _to_read(ticket: Ticket) -> TicketRead:
    return TicketRead(
        id=ticket.id,
        organization_id=ticket.organization_id,
        title=ticket.title,
        description=ticket.description,
        image=ticket.image,
        votes=ticket.votes,
        priority=ticket.priority,
        status=ticket.status,
        tag=ticket.tag,
        last_triaged_at=ticket.last_triaged_at,
        triage_status=ticket.triage_status,
        reported_by=_reporter(ticket),
        created_at=ticket.created_at,
        updated_at=ticket.updated_at,
    )


@router.get("", response_model=TicketListResponse)
def list_tickets(
    organization_id: UUID,
    q: str | None = Query(None, max_length=200, description="Search in title and description"),
    tag: TicketTag | None = None,
    sort: TicketSort = TicketSort.NEWEST,
    user: CurrentUser | None = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    """
    List an organization's tickets.

    Each row carries whether the caller has voted on it (false when
    anonymous).
    """
    tickets = ticket_service.list_tickets(db, organization_id, q=q, tag=tag, sort=sort)
    voted_ids = vote_service.voted_ticket_ids(
        db,
        user.user_id if user else None,
        [ticket.id for ticket in tickets],
    )
    return TicketListResponse(
        tickets=[_to_list_item(ticket, voted=ticket.id in voted_ids) for ticket in tickets]
    )


@router.get("/mine", response_model=TicketListResponse)
def list_my_tickets(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Tickets the caller submitted, across organizations."""
    tickets = ticket_service.list_tickets_for_reporter(db, user.user_id)
    voted_ids = vote_service.voted_ticket_ids(db, user.user_id, [ticket.id for ticket in tickets])
    return TicketListResponse(
        tickets=[
            _to_list_item(ticket, voted=ticket.id in voted_ids, with_organization=True)
            for ticket in tickets
        ]
    )


@router.post(
    "",
    response_model=TicketRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_ticket(
    data: TicketCreate,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Submit a ticket to an organization."""
    ticket = ticket_service.create_ticket(db, user.user_id, data)
    return _to_read(ticket)


@router.get("/{ticket_id}", response_model=TicketRead)
def get_ticket(ticket_id: UUID, db: Session = Depends(get_db)):
    """Ticket detail (includes image)."""
    ticket = ticket_service.get_ticket(db, ticket_id)
    if not ticket:
        raise ticket_service.TicketNotFoundError()
    return _to_read(ticket)


@router.patch(
    "/{ticket_id}",
    response_model=TicketRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_ticket(
    ticket_id: UUID,
    data: TicketUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Edit title, description or image (reporter only)."""
    ticket = ticket_service.update_ticket(db, user.user_id, ticket_id, data)
    return _to_read(ticket)


@router.delete(
    "/{ticket_id}",
    response_model=TicketDeleteResponse,
    dependencies=[Depends(require_csrf_header)],
)
def delete_ticket(
    ticket_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Delete a ticket and its votes (reporter only)."""
    ticket_service.delete_ticket(db, user.user_id, ticket_id)
    return TicketDeleteResponse(message="Ticket deleted successfully")


@router.patch(
    "/{ticket_id}/status",
    response_model=TicketRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_ticket_status(
    ticket_id: UUID,
    data: TicketStatusUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Change ticket status (organization owner only)."""
    ticket = ticket_service.update_ticket_status(db, user.user_id, ticket_id, data.status)
    return _to_read(ticket)


@router.post(
    "/{ticket_id}/triage",
    response_model=TicketTriageResponse,
    dependencies=[Depends(require_csrf_header)],
)
@limiter.limit(AI_LIMIT)
async def triage_ticket(
    request: Request,
    ticket_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    provider: InferenceProvider = Depends(get_inference_provider),
):
    """AI-assign priority and type to one ticket (organization owner only)."""
    return await triage_service.triage_ticket(db, provider, user.user_id, ticket_id)


# =============================================================================
# Votes
# =============================================================================


@router.post(
    "/{ticket_id}/vote",
    response_model=VoteResponse,
    dependencies=[Depends(require_csrf_header)],
)
def toggle_vote(
    ticket_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Toggle the caller's vote; returns the new state and count."""
    result = vote_service.toggle_vote(db, user.user_id, ticket_id)
    return VoteResponse(voted=result.voted, votes=result.votes)


@router.get("/{ticket_id}/vote", response_model=VoteStatusResponse)
def get_vote_status(
    ticket_id: UUID,
    user: CurrentUser | None = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    """Whether the caller has voted on the ticket (false when anonymous)."""
    return VoteStatusResponse(
        voted=vote_service.has_voted(db, user.user_id if user else None, ticket_id)
    )
