"""Organization schemas for API requests/responses."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from feedback_hub.utils.validation import (
    ORG_IMAGE_MAX_BYTES,
    normalize_optional_text,
    normalize_optional_url,
    validate_base64_image,
)


class OrganizationWrite(BaseModel):
    """Fields shared by create and update."""

    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)
    website: str | None = Field(None, max_length=200)
    github: str | None = Field(None, max_length=200)
    image: str | None = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v

    @field_validator("description")
    @classmethod
    def clean_description(cls, v: str | None) -> str | None:
        return normalize_optional_text(v)

    @field_validator("website", "github")
    @classmethod
    def check_url(cls, v: str | None) -> str | None:
        return normalize_optional_url(v)

    @field_validator("image")
    @classmethod
    def check_image(cls, v: str | None) -> str | None:
        return validate_base64_image(
            v, max_bytes=ORG_IMAGE_MAX_BYTES, field_name="Organization image"
        )


class OrganizationCreate(OrganizationWrite):
    """Request to create an organization."""


class OrganizationUpdate(OrganizationWrite):
    """
    Request to update an organization.

    Text fields are replaced as sent (omitted/empty clears them); the image
    is only replaced when provided.
    """


class OrganizationListItem(BaseModel):
    """Organization row without the image payload."""

    id: UUID
    name: str
    description: str | None = None
    website: str | None = None
    github: str | None = None
    created_by: UUID
    created_at: datetime

    model_config = {"from_attributes": True}


class OrganizationRead(OrganizationListItem):
    """Organization detail including the image."""

    image: str | None = None
    updated_at: datetime


class OrganizationListResponse(BaseModel):
    organizations: list[OrganizationListItem]
