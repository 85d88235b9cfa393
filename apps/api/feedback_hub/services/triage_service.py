"""AI triage and summary service.

Inference always runs before any write, so an upstream failure or an
unparseable answer leaves every ticket untouched.
"""

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session, defer

from feedback_hub.core import policies
from feedback_hub.core.errors import ParseError
from feedback_hub.core.structured_logging import build_log_context
from feedback_hub.db.enums import (
    TRIAGE_PRIORITIES,
    TRIAGE_TAGS,
    TicketPriority,
    TicketTag,
    TriageStatus,
)
from feedback_hub.db.models import Organization, Ticket
from feedback_hub.schemas.ai import (
    BulkTriageItem,
    BulkTriageResponse,
    SummaryResponse,
    TicketTriageResponse,
    TriageDecision,
)
from feedback_hub.services.ai_response_validation import (
    parse_json_array,
    parse_json_object,
    validate_model,
)
from feedback_hub.services.inference_provider import InferenceProvider
from feedback_hub.services.org_service import OrganizationNotFoundError, get_organization
from feedback_hub.services.prompts import get_prompt, to_prompt_json
from feedback_hub.services.ticket_service import TicketNotFoundError, get_ticket

logger = logging.getLogger(__name__)

NO_TICKETS_SUMMARY = "No tickets found for this organization."
EMPTY_SUMMARY = "Unable to generate summary."


class TriageParseError(ParseError):
    """Model answer for a single ticket did not match {priority, type}."""


def _load_owned_organization(db: Session, user_id: UUID, org_id: UUID) -> Organization:
    org = get_organization(db, org_id)
    policies.enforce(
        policies.can_triage_organization(user_id, org),
        not_found=OrganizationNotFoundError,
    )
    return org


def _org_tickets(db: Session, org_id: UUID) -> list[Ticket]:
    return list(
        db.execute(
            select(Ticket)
            .options(defer(Ticket.image))
            .where(Ticket.organization_id == org_id)
            .order_by(Ticket.created_at.asc(), Ticket.id.asc())
        )
        .scalars()
        .all()
    )


def _product_context(org: Organization) -> str:
    lines = [f"Product: {org.name}"]
    if org.description:
        lines.append(f"Description: {org.description}")
    if org.website:
        lines.append(f"Website: {org.website}")
    if org.github:
        lines.append(f"GitHub: {org.github}")
    return "\n".join(lines)


def _filter_triage_items(
    raw_items: list,
    known_ids: set[UUID],
    log_context: dict,
) -> list[BulkTriageItem]:
    """Keep items naming a known ticket with an allowed priority and type."""
    accepted: dict[UUID, BulkTriageItem] = {}
    for raw in raw_items:
        if not isinstance(raw, dict):
            logger.warning(f"Dropping non-object triage item: {raw!r}", extra=log_context)
            continue
        try:
            ticket_id = UUID(str(raw.get("id")))
        except ValueError:
            logger.warning(f"Dropping triage item with bad id: {raw!r}", extra=log_context)
            continue
        priority = raw.get("priority")
        tag = raw.get("type")
        if ticket_id not in known_ids:
            logger.warning(f"Dropping triage item for unknown ticket {ticket_id}", extra=log_context)
            continue
        if priority not in TRIAGE_PRIORITIES or tag not in TRIAGE_TAGS:
            logger.warning(
                f"Dropping triage item {ticket_id}: priority={priority!r} type={tag!r}",
                extra=log_context,
            )
            continue
        accepted[ticket_id] = BulkTriageItem(
            id=ticket_id,
            priority=TicketPriority(priority),
            type=TicketTag(tag),
        )
    return list(accepted.values())


async def triage_organization(
    db: Session,
    provider: InferenceProvider,
    user_id: UUID,
    org_id: UUID,
) -> BulkTriageResponse:
    """
    Assign priority and tag to every ticket of an organization in one call.

    Invalid items in the model answer are skipped; the rest are applied in a
    single transaction.

    Raises:
        OrganizationNotFoundError: Unknown org_id
        ForbiddenError: Caller is not the owner
        InferenceUpstreamError: Inference call failed
    """
    org = _load_owned_organization(db, user_id, org_id)
    log_context = build_log_context(user_id=user_id, org_id=org.id)
    tickets = _org_tickets(db, org.id)
    if not tickets:
        return BulkTriageResponse(
            updated_count=0,
            total_tickets=0,
            message="No tickets to triage",
        )

    tickets_json = to_prompt_json(
        [
            {
                "id": str(ticket.id),
                "title": ticket.title,
                "description": ticket.description,
                "current_priority": ticket.priority.value,
                "current_type": ticket.tag.value,
                "status": ticket.status.value,
                "votes": ticket.votes,
            }
            for ticket in tickets
        ]
    )
    prompt = get_prompt("bulk_triage").render(
        product_context=_product_context(org),
        tickets_json=tickets_json,
    )
    answer = await provider.complete(prompt)

    raw_items = parse_json_array(answer)
    if raw_items is None:
        logger.warning("Bulk triage answer was not a JSON array", extra=log_context)
        raw_items = []
    items = _filter_triage_items(raw_items, {ticket.id for ticket in tickets}, log_context)

    triaged_at = datetime.now(timezone.utc)
    updated_count = 0
    for item in items:
        result = db.execute(
            update(Ticket)
            .where(Ticket.id == item.id, Ticket.organization_id == org.id)
            .values(
                priority=item.priority,
                tag=item.type,
                last_triaged_at=triaged_at,
                triage_status=TriageStatus.TRIAGED,
            )
            .execution_options(synchronize_session=False)
        )
        updated_count += result.rowcount
    db.commit()

    logger.info(
        f"Bulk triage applied {updated_count}/{len(tickets)} tickets",
        extra=log_context,
    )
    return BulkTriageResponse(
        updated_count=updated_count,
        total_tickets=len(tickets),
        results=items,
        message=f"Successfully triaged {updated_count} tickets",
    )


async def triage_ticket(
    db: Session,
    provider: InferenceProvider,
    user_id: UUID,
    ticket_id: UUID,
) -> TicketTriageResponse:
    """
    Triage one ticket (owner of its organization only).

    Raises:
        TicketNotFoundError: Unknown ticket_id
        ForbiddenError: Caller does not own the organization
        TriageParseError: Model answer is not a valid {priority, type}
    """
    ticket = get_ticket(db, ticket_id)
    if ticket is None:
        raise TicketNotFoundError()
    org = get_organization(db, ticket.organization_id)
    policies.enforce(
        policies.can_change_ticket_status(user_id, ticket, org),
        not_found=TicketNotFoundError,
    )
    log_context = build_log_context(user_id=user_id, org_id=org.id, ticket_id=ticket.id)

    prompt = get_prompt("ticket_triage").render(
        title=ticket.title,
        description=ticket.description,
    )
    answer = await provider.complete(prompt)

    decision = validate_model(TriageDecision, parse_json_object(answer))
    if decision is None:
        logger.warning(f"Unparseable triage answer: {answer[:500]!r}", extra=log_context)
        raise TriageParseError()

    ticket.priority = TicketPriority(decision.priority)
    ticket.tag = TicketTag(decision.type)
    ticket.last_triaged_at = datetime.now(timezone.utc)
    ticket.triage_status = TriageStatus.TRIAGED
    db.commit()
    db.refresh(ticket)

    logger.info(
        f"Ticket triaged as {decision.priority}/{decision.type}",
        extra=log_context,
    )
    return TicketTriageResponse(
        id=ticket.id,
        priority=ticket.priority,
        type=ticket.tag,
        last_triaged_at=ticket.last_triaged_at,
        triage_status=ticket.triage_status,
    )


async def summarize_organization(
    db: Session,
    provider: InferenceProvider,
    user_id: UUID,
    org_id: UUID,
) -> SummaryResponse:
    """Narrative summary of an organization's tickets (owner only). Read-only."""
    org = _load_owned_organization(db, user_id, org_id)
    tickets = _org_tickets(db, org.id)
    if not tickets:
        return SummaryResponse(summary=NO_TICKETS_SUMMARY, ticket_count=0)

    tickets_json = to_prompt_json(
        [
            {
                "title": ticket.title,
                "description": ticket.description,
                "type": ticket.tag.value,
                "status": ticket.status.value,
                "priority": ticket.priority.value,
                "votes": ticket.votes,
                "created_at": ticket.created_at.isoformat(),
            }
            for ticket in tickets
        ]
    )
    prompt = get_prompt("org_summary").render(
        ticket_count=len(tickets),
        tickets_json=tickets_json,
    )
    answer = await provider.complete(prompt)

    summary = answer.strip() or EMPTY_SUMMARY
    return SummaryResponse(summary=summary, ticket_count=len(tickets))
