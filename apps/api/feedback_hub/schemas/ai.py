"""Schemas for AI-assisted endpoints and parsed model output."""

from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from feedback_hub.db.enums import TicketPriority, TicketTag, TriageStatus
from feedback_hub.utils.validation import TICKET_IMAGE_MAX_BYTES, validate_base64_image


# =============================================================================
# Model output shapes
# =============================================================================


class TriageDecision(BaseModel):
    """Single-ticket triage answer from the model."""

    model_config = ConfigDict(extra="ignore")

    priority: Literal["low", "medium", "high"]
    type: Literal["bug", "feature", "tweak"]


class BulkTriageItem(BaseModel):
    """One element of the bulk triage array, after filtering."""

    id: UUID
    priority: TicketPriority
    type: TicketTag


class RedditDigestOutput(BaseModel):
    """Categorized feedback extracted from Reddit posts."""

    model_config = ConfigDict(extra="ignore")

    bugs: list[str] = Field(...)
    features: list[str] = Field(...)
    suggestions: list[str] = Field(...)
    pros: list[str] | None = None
    cons: list[str] | None = None
    other: list[str] | None = None


# =============================================================================
# API payloads
# =============================================================================


class BulkTriageResponse(BaseModel):
    updated_count: int
    total_tickets: int
    results: list[BulkTriageItem] = Field(default_factory=list)
    message: str | None = None


class TicketTriageResponse(BaseModel):
    id: UUID
    priority: TicketPriority
    type: TicketTag
    last_triaged_at: datetime | None = None
    triage_status: TriageStatus | None = None


class SummaryResponse(BaseModel):
    summary: str
    ticket_count: int


class RedditDigestRequest(BaseModel):
    search_term: str = Field(..., min_length=1, max_length=200)
    top_n: int = Field(..., ge=1, le=25)
    time_range: Literal["hour", "day", "week", "month", "year", "all"]


class RedditDigestResponse(BaseModel):
    summary: RedditDigestOutput
    post_count: int


class CompletionRequest(BaseModel):
    prompt: str = Field(..., min_length=1, max_length=50_000)
    image_base64: str | None = None
    image_mime_type: str | None = Field(None, max_length=100)
    model: str | None = Field(None, max_length=100)

    @field_validator("image_base64")
    @classmethod
    def check_image(cls, v: str | None) -> str | None:
        return validate_base64_image(v, max_bytes=TICKET_IMAGE_MAX_BYTES)


class CompletionResponse(BaseModel):
    output: str
