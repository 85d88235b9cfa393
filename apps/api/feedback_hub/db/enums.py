"""Enum definitions for ticket fields."""

from enum import Enum


class TicketPriority(str, Enum):
    """Ticket priority level. NONE means not yet triaged."""

    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TicketStatus(str, Enum):
    """Ticket lifecycle status (owned by the organization owner)."""

    OPEN = "open"
    IN_PROGRESS = "in-progress"
    CLOSED = "closed"


class TicketTag(str, Enum):
    """Kind of feedback a ticket carries."""

    BUG = "bug"
    TWEAK = "tweak"
    FEATURE = "feature"


class TriageStatus(str, Enum):
    """AI triage progress marker."""

    PENDING = "pending"
    TRIAGED = "triaged"


class TicketSort(str, Enum):
    """Sort modes for ticket lists."""

    NEWEST = "newest"
    MOST_VOTED = "mostVoted"
    PRIORITY = "priority"


# Lower rank sorts first
PRIORITY_RANK: dict[TicketPriority, int] = {
    TicketPriority.HIGH: 0,
    TicketPriority.MEDIUM: 1,
    TicketPriority.LOW: 2,
    TicketPriority.NONE: 3,
}

# Values the triage model may assign ("none" is reserved for untriaged tickets)
TRIAGE_PRIORITIES = frozenset(
    {TicketPriority.LOW.value, TicketPriority.MEDIUM.value, TicketPriority.HIGH.value}
)
TRIAGE_TAGS = frozenset(tag.value for tag in TicketTag)
