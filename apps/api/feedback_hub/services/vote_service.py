"""Vote ledger - toggle votes and keep Ticket.votes equal to the vote count.

Consistency does not depend on request-level locking:

- the unique index uq_votes_user_ticket rejects a second vote row for the
  same (user, ticket), so the loser of a concurrent create race fails in the
  database and is answered with the existing state;
- the counter only moves through relative UPDATEs (votes = votes +/- 1),
  and only after this request's own insert/delete actually changed a row.
"""

import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, defer

from feedback_hub.core import policies
from feedback_hub.core.structured_logging import build_log_context
from feedback_hub.db.models import Ticket, Vote
from feedback_hub.services.ticket_service import TicketNotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VoteResult:
    """State after a toggle."""

    voted: bool
    votes: int


def _get_vote(db: Session, user_id: UUID, ticket_id: UUID) -> Vote | None:
    return db.execute(
        select(Vote).where(Vote.user_id == user_id, Vote.ticket_id == ticket_id)
    ).scalar_one_or_none()


def _adjust_counter(db: Session, ticket_id: UUID, delta: int) -> None:
    db.execute(
        update(Ticket)
        .where(Ticket.id == ticket_id)
        .values(votes=Ticket.votes + delta)
        .execution_options(synchronize_session=False)
    )


def _stored_count(db: Session, ticket_id: UUID) -> int:
    """
    Read the counter from the database, bypassing the identity map.

    Raises:
        TicketNotFoundError: The ticket was deleted mid-toggle
    """
    votes = db.execute(select(Ticket.votes).where(Ticket.id == ticket_id)).scalar_one_or_none()
    if votes is None:
        raise TicketNotFoundError()
    return votes


def toggle_vote(db: Session, user_id: UUID, ticket_id: UUID) -> VoteResult:
    """
    Flip the caller's vote on a ticket.

    Returns:
        VoteResult with the caller's new vote state and the ticket's count

    Raises:
        TicketNotFoundError: Unknown ticket_id
    """
    ticket = db.execute(
        select(Ticket).options(defer(Ticket.image)).where(Ticket.id == ticket_id)
    ).scalar_one_or_none()
    policies.enforce(policies.can_vote(user_id, ticket), not_found=TicketNotFoundError)
    log_context = build_log_context(user_id=user_id, ticket_id=ticket_id)

    existing = _get_vote(db, user_id, ticket_id)
    if existing is not None:
        removed = db.execute(
            delete(Vote)
            .where(Vote.id == existing.id)
            .execution_options(synchronize_session=False)
        ).rowcount
        if removed:
            _adjust_counter(db, ticket_id, -1)
        else:
            logger.info("Vote already removed by a concurrent toggle", extra=log_context)
        db.commit()
        return VoteResult(voted=False, votes=_stored_count(db, ticket_id))

    db.add(Vote(user_id=user_id, ticket_id=ticket_id))
    try:
        db.flush()
    except IntegrityError:
        # A concurrent toggle inserted the same (user, ticket) first
        db.rollback()
        logger.info("Duplicate vote insert rejected; keeping existing vote", extra=log_context)
        return VoteResult(voted=True, votes=_stored_count(db, ticket_id))

    _adjust_counter(db, ticket_id, 1)
    db.commit()
    return VoteResult(voted=True, votes=_stored_count(db, ticket_id))


def has_voted(db: Session, user_id: UUID | None, ticket_id: UUID) -> bool:
    """Whether the caller has voted; anonymous callers never have."""
    if user_id is None:
        return False
    return _get_vote(db, user_id, ticket_id) is not None


def voted_ticket_ids(db: Session, user_id: UUID | None, ticket_ids: list[UUID]) -> set[UUID]:
    """Subset of ticket_ids the user has voted on."""
    if user_id is None or not ticket_ids:
        return set()
    rows = db.execute(
        select(Vote.ticket_id).where(Vote.user_id == user_id, Vote.ticket_id.in_(ticket_ids))
    ).scalars()
    return set(rows)


def count_votes(db: Session, ticket_id: UUID) -> int:
    """Authoritative vote count from the votes table."""
    return db.execute(
        select(func.count()).select_from(Vote).where(Vote.ticket_id == ticket_id)
    ).scalar_one()


def reconcile_vote_counts(db: Session) -> int:
    """
    Repair tickets whose counter drifted from the votes table.

    Returns:
        Number of tickets corrected
    """
    vote_counts = (
        select(Vote.ticket_id, func.count().label("actual"))
        .group_by(Vote.ticket_id)
        .subquery()
    )
    actual = func.coalesce(vote_counts.c.actual, 0)
    drifted = db.execute(
        select(Ticket.id, Ticket.votes, actual.label("actual"))
        .outerjoin(vote_counts, vote_counts.c.ticket_id == Ticket.id)
        .where(Ticket.votes != actual)
    ).all()

    for ticket_id, stored, expected in drifted:
        logger.warning(
            f"Vote counter drift: stored={stored} actual={expected}",
            extra=build_log_context(ticket_id=ticket_id),
        )
        # Recount inside the UPDATE so votes cast meanwhile are included
        db.execute(
            update(Ticket)
            .where(Ticket.id == ticket_id)
            .values(
                votes=select(func.count())
                .select_from(Vote)
                .where(Vote.ticket_id == ticket_id)
                .scalar_subquery()
            )
            .execution_options(synchronize_session=False)
        )
    db.commit()
    return len(drifted)
