"""Centralized access rules for organizations, tickets and votes.

Every rule is a pure function of the caller id and the resource(s) involved
and returns a Decision. Nothing here touches the database; callers load the
resources first and pass None for ones that do not exist.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from feedback_hub.core.errors import ForbiddenError, NotFoundError, UnauthenticatedError

if TYPE_CHECKING:
    from feedback_hub.db.models import Organization, Ticket


class DenyReason(str, Enum):
    """Why a rule denied access."""

    UNAUTHENTICATED = "unauthenticated"
    NOT_OWNER = "not-owner"
    NOT_REPORTER = "not-reporter"
    QUOTA_EXCEEDED = "quota-exceeded"
    NOT_FOUND = "not-found"


@dataclass(frozen=True)
class Decision:
    """Outcome of a rule: allowed, or denied with a reason."""

    allowed: bool
    reason: DenyReason | None = None

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = Decision(allowed=True)


def deny(reason: DenyReason) -> Decision:
    return Decision(allowed=False, reason=reason)


DENY_MESSAGES: dict[DenyReason, str] = {
    DenyReason.UNAUTHENTICATED: "Not authenticated",
    DenyReason.NOT_OWNER: "You must be the organization owner to perform this action",
    DenyReason.NOT_REPORTER: "Only the ticket reporter can perform this action",
    DenyReason.QUOTA_EXCEEDED: "You have already created an organization",
    DenyReason.NOT_FOUND: "Not found",
}


# =============================================================================
# Rules
# =============================================================================


def can_create_organization(user_id: UUID | None, owned_count: int) -> Decision:
    """A user may own at most one organization."""
    if user_id is None:
        return deny(DenyReason.UNAUTHENTICATED)
    if owned_count > 0:
        return deny(DenyReason.QUOTA_EXCEEDED)
    return ALLOW


def can_edit_organization(user_id: UUID | None, org: Organization | None) -> Decision:
    if user_id is None:
        return deny(DenyReason.UNAUTHENTICATED)
    if org is None:
        return deny(DenyReason.NOT_FOUND)
    if org.created_by != user_id:
        return deny(DenyReason.NOT_OWNER)
    return ALLOW


def can_create_ticket(user_id: UUID | None, org: Organization | None) -> Decision:
    if user_id is None:
        return deny(DenyReason.UNAUTHENTICATED)
    if org is None:
        return deny(DenyReason.NOT_FOUND)
    return ALLOW


def can_edit_ticket(user_id: UUID | None, ticket: Ticket | None) -> Decision:
    """Content edits and deletion belong to the reporter."""
    if user_id is None:
        return deny(DenyReason.UNAUTHENTICATED)
    if ticket is None:
        return deny(DenyReason.NOT_FOUND)
    if ticket.reported_by != user_id:
        return deny(DenyReason.NOT_REPORTER)
    return ALLOW


def can_change_ticket_status(
    user_id: UUID | None,
    ticket: Ticket | None,
    org: Organization | None,
) -> Decision:
    """Status belongs to the owner of the ticket's organization."""
    if user_id is None:
        return deny(DenyReason.UNAUTHENTICATED)
    if ticket is None or org is None:
        return deny(DenyReason.NOT_FOUND)
    if org.id != ticket.organization_id or org.created_by != user_id:
        return deny(DenyReason.NOT_OWNER)
    return ALLOW


def can_triage_organization(user_id: UUID | None, org: Organization | None) -> Decision:
    """Triage and summaries are owner-only."""
    return can_edit_organization(user_id, org)


def can_vote(user_id: UUID | None, ticket: Ticket | None) -> Decision:
    """Any authenticated user may vote, including on their own ticket."""
    if user_id is None:
        return deny(DenyReason.UNAUTHENTICATED)
    if ticket is None:
        return deny(DenyReason.NOT_FOUND)
    return ALLOW


# =============================================================================
# Enforcement
# =============================================================================


def enforce(decision: Decision, *, not_found: type[NotFoundError] = NotFoundError) -> None:
    """
    Raise the service error matching a denial.

    Args:
        not_found: NotFoundError subclass to raise for missing resources
    """
    if decision.allowed:
        return
    reason = decision.reason
    if reason is DenyReason.UNAUTHENTICATED:
        raise UnauthenticatedError()
    if reason is DenyReason.NOT_FOUND:
        raise not_found()
    raise ForbiddenError(DENY_MESSAGES[reason], reason=reason.value)
