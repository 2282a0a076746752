"""
Pydantic schemas for contact management.

Request bodies use the client's camelCase keys; responses echo the stored
columns in snake_case.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def normalize_text(value: str | None) -> str | None:
    """Trim a free-text field; empty strings become absent."""
    if value is None:
        return None
    return value.strip() or None


def normalize_tags(value: Any) -> list[str] | None:
    """Keep tags only when they arrive as a list of strings."""
    if isinstance(value, list) and all(isinstance(tag, str) for tag in value):
        return value
    return None


class _ContactFields(BaseModel):
    """Optional profile fields shared by create and update bodies."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    custom_name: str | None = Field(default=None, description="Display label")
    whatsapp_name: str | None = Field(default=None, description="Name from the WhatsApp profile")
    email: str | None = None
    company: str | None = None
    position: str | None = None
    address: str | None = None
    notes: str | None = None
    tags: list[str] | None = Field(default=None, description="Free-text tags")

    @field_validator(
        "custom_name",
        "whatsapp_name",
        "email",
        "company",
        "position",
        "address",
        "notes",
        mode="after",
    )
    @classmethod
    def _trim(cls, v: str | None) -> str | None:
        return normalize_text(v)

    @field_validator("tags", mode="before")
    @classmethod
    def _tags(cls, v: Any) -> list[str] | None:
        return normalize_tags(v)

    def profile_values(self) -> dict[str, Any]:
        """Column values for every mutable profile field (absent ones as None)."""
        return {
            "custom_name": self.custom_name,
            "whatsapp_name": self.whatsapp_name,
            "email": self.email,
            "company": self.company,
            "position": self.position,
            "address": self.address,
            "notes": self.notes,
            "tags": self.tags,
        }


class ContactCreateRequest(_ContactFields):
    """Body of POST /api/contacts."""

    phone_number: str | None = Field(default=None, description="Phone number / WhatsApp ID")

    @field_validator("phone_number", mode="after")
    @classmethod
    def _trim_phone(cls, v: str | None) -> str | None:
        return normalize_text(v)


class ContactUpdateRequest(_ContactFields):
    """Body of PUT /api/contacts/{id}; phone number and owner are not accepted."""


class ContactResponse(BaseModel):
    """A stored contact."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    owner_id: UUID
    phone_number: str
    custom_name: str
    whatsapp_name: str | None = None
    email: str | None = None
    company: str | None = None
    position: str | None = None
    address: str | None = None
    notes: str | None = None
    tags: list[str] | None = None
    last_active: datetime | None = None
    created_at: datetime
    updated_at: datetime


class ContactListResponse(BaseModel):
    """Response of GET /api/contacts."""

    success: bool = True
    contacts: list[ContactResponse]
    count: int


class ContactSearchResponse(ContactListResponse):
    """Response of GET /api/contacts/search."""

    query: str
    tag: str | None = None


class ContactEnvelope(BaseModel):
    """Single-contact response."""

    success: bool = True
    contact: ContactResponse


class ContactSavedResponse(ContactEnvelope):
    """Response of create / update."""

    message: str


class MessageResponse(BaseModel):
    """Acknowledgement without payload."""

    success: bool = True
    message: str
