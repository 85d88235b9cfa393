"""Authentication-related Pydantic schemas."""

from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class TokenPayload(BaseModel):
    """Decoded JWT payload structure."""
    sub: UUID  # user_id
    email: str
    first_name: str | None = None
    last_name: str | None = None


class CurrentUser(BaseModel):
    """
    Identity of the caller for authenticated requests.

    Returned by the get_current_user dependency.
    """
    user_id: UUID
    email: str
    first_name: str | None = None
    last_name: str | None = None

    @property
    def display_name(self) -> str:
        full_name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return full_name or self.email


class MeResponse(BaseModel):
    """Response schema for GET /auth/me endpoint."""
    user_id: UUID
    email: str
    display_name: str
    organization_id: UUID | None = None


class DevLoginRequest(BaseModel):
    """Dev-only login payload (stands in for the identity provider)."""
    email: EmailStr
    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)
