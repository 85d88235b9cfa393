"""Pydantic schemas for ticket and vote APIs."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from feedback_hub.db.enums import TicketPriority, TicketStatus, TicketTag, TriageStatus
from feedback_hub.utils.validation import TICKET_IMAGE_MAX_BYTES, validate_base64_image


def _check_ticket_image(v: str | None) -> str | None:
    return validate_base64_image(v, max_bytes=TICKET_IMAGE_MAX_BYTES, field_name="Ticket image")


class TicketCreate(BaseModel):
    """Ticket submission payload."""

    organization_id: UUID
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=2000)
    tag: TicketTag
    priority: TicketPriority = TicketPriority.NONE
    image: str | None = None

    @field_validator("title", "description")
    @classmethod
    def strip_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Field is required")
        return v

    @field_validator("image")
    @classmethod
    def check_image(cls, v: str | None) -> str | None:
        return _check_ticket_image(v)


class TicketUpdate(BaseModel):
    """Reporter edit payload; only the content fields are editable."""

    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, min_length=1, max_length=2000)
    image: str | None = None

    model_config = {"extra": "forbid"}

    @field_validator("title", "description")
    @classmethod
    def strip_optional(cls, v: str | None) -> str:
        # Omit the field to keep it; an explicit null is not a value
        if v is None:
            raise ValueError("Field cannot be blank")
        v = v.strip()
        if not v:
            raise ValueError("Field cannot be blank")
        return v

    @field_validator("image")
    @classmethod
    def check_image(cls, v: str | None) -> str | None:
        return _check_ticket_image(v)


class TicketStatusUpdate(BaseModel):
    """Organization owner status change."""

    status: TicketStatus


class ReporterRead(BaseModel):
    id: UUID
    name: str


class OrganizationRef(BaseModel):
    id: UUID
    name: str


class TicketListItem(BaseModel):
    """Ticket row for lists (no image)."""

    id: UUID
    organization_id: UUID
    title: str
    description: str
    votes: int
    priority: TicketPriority
    status: TicketStatus
    tag: TicketTag
    voted: bool = False
    reported_by: ReporterRead | None = None
    organization: OrganizationRef | None = None
    created_at: datetime
    updated_at: datetime


class TicketRead(BaseModel):
    """Ticket detail."""

    id: UUID
    organization_id: UUID
    title: str
    description: str
    image: str | None = None
    votes: int
    priority: TicketPriority
    status: TicketStatus
    tag: TicketTag
    last_triaged_at: datetime | None = None
    triage_status: TriageStatus | None = None
    reported_by: ReporterRead | None = None
    created_at: datetime
    updated_at: datetime


class TicketListResponse(BaseModel):
    tickets: list[TicketListItem]


class TicketDeleteResponse(BaseModel):
    message: str


class VoteResponse(BaseModel):
    """Outcome of a vote toggle."""

    voted: bool
    votes: int


class VoteStatusResponse(BaseModel):
    voted: bool
