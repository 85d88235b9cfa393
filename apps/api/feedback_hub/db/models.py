"""ORM models for organizations, tickets and votes."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from feedback_hub.db.base import Base
from feedback_hub.db.enums import TicketPriority, TicketStatus, TicketTag, TriageStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum_type(enum_cls, *, name: str) -> Enum:
    """Store str-enums by value in a VARCHAR guarded by a CHECK constraint."""
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        create_constraint=True,
        length=32,
        values_callable=lambda members: [member.value for member in members],
    )


class User(Base):
    """
    Identity mirrored from the external identity provider.

    The id is the provider subject; rows exist so that organizations,
    tickets and votes can reference the caller and show a display name.
    """
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), onupdate=_utcnow, nullable=False
    )

    @property
    def display_name(self) -> str:
        full_name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return full_name or self.email


class Organization(Base):
    """
    A product surface that collects feedback.

    Each user may own at most one organization; the unique index on
    created_by backs the application-level check.
    """
    __tablename__ = "organizations"
    __table_args__ = (
        UniqueConstraint("created_by", name="uq_organizations_created_by"),
        Index("idx_organizations_name_lower", "name_lower"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    name_lower: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    website: Mapped[str | None] = mapped_column(String(200), nullable=True)
    github: Mapped[str | None] = mapped_column(String(200), nullable=True)
    # Raw base64 payload (1MB decoded cap enforced by request schemas)
    image: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), onupdate=_utcnow, nullable=False
    )

    owner: Mapped["User"] = relationship()
    tickets: Mapped[list["Ticket"]] = relationship(
        back_populates="organization",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def rename(self, name: str) -> None:
        """Set name and keep the search column in step."""
        self.name = name
        self.name_lower = name.lower()


class Ticket(Base):
    """
    A feedback item submitted against an organization.

    votes is a denormalized COUNT of the votes table; it is only ever
    changed by relative UPDATEs issued from vote_service.
    """
    __tablename__ = "tickets"
    __table_args__ = (
        CheckConstraint("votes >= 0", name="votes_non_negative"),
        Index("idx_tickets_org_created", "organization_id", "created_at"),
        Index("idx_tickets_reported_by", "reported_by"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    reported_by: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(String(2000), nullable=False)
    # Raw base64 payload (5MB decoded cap enforced by request schemas)
    image: Mapped[str | None] = mapped_column(Text, nullable=True)
    votes: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)
    priority: Mapped[TicketPriority] = mapped_column(
        _enum_type(TicketPriority, name="ticket_priority"),
        default=TicketPriority.NONE,
        nullable=False,
    )
    status: Mapped[TicketStatus] = mapped_column(
        _enum_type(TicketStatus, name="ticket_status"),
        default=TicketStatus.OPEN,
        nullable=False,
    )
    tag: Mapped[TicketTag] = mapped_column(_enum_type(TicketTag, name="ticket_tag"), nullable=False)
    last_triaged_at: Mapped[datetime | None] = mapped_column(nullable=True)
    triage_status: Mapped[TriageStatus | None] = mapped_column(
        _enum_type(TriageStatus, name="triage_status"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), onupdate=_utcnow, nullable=False
    )

    organization: Mapped["Organization"] = relationship(back_populates="tickets")
    reporter: Mapped["User"] = relationship()


class Vote(Base):
    """One user's endorsement of one ticket. Created and removed, never updated."""
    __tablename__ = "votes"
    __table_args__ = (
        UniqueConstraint("user_id", "ticket_id", name="uq_votes_user_ticket"),
        Index("idx_votes_user", "user_id"),
        Index("idx_votes_ticket", "ticket_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    ticket_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), onupdate=_utcnow, nullable=False
    )
