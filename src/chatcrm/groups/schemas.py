"""
Pydantic schemas for groups and group membership.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from chatcrm.contacts.schemas import normalize_text


class _CamelBody(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class GroupCreateRequest(_CamelBody):
    """Body of POST /api/groups."""

    name: str | None = None
    description: str | None = None
    member_ids: list[str] = Field(default_factory=list, description="Contact IDs")

    @field_validator("name", "description", mode="after")
    @classmethod
    def _trim(cls, v: str | None) -> str | None:
        return normalize_text(v)


class GroupUpdateRequest(_CamelBody):
    """Body of PUT /api/groups/{id}."""

    name: str | None = None
    description: str | None = None

    @field_validator("name", "description", mode="after")
    @classmethod
    def _trim(cls, v: str | None) -> str | None:
        return normalize_text(v)


class AddMembersRequest(_CamelBody):
    """Body of POST /api/groups/{id}/members."""

    user_ids: list[str] | None = Field(default=None, description="Contact IDs to add")


class GroupResponse(BaseModel):
    """A stored group."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    owner_id: UUID
    name: str
    description: str | None = None
    created_at: datetime


class GroupSummary(BaseModel):
    """One row of the group list with its member count."""

    group_id: UUID
    group_name: str
    group_description: str | None = None
    member_count: int


class GroupListResponse(BaseModel):
    success: bool = True
    groups: list[GroupSummary]


class GroupEnvelope(BaseModel):
    success: bool = True
    group: GroupResponse


class GroupCreatedResponse(GroupEnvelope):
    added: int


class GroupMember(BaseModel):
    """A member of a group as shown in the chat list.

    ``user_id`` carries the contact's phone number, which is the chat
    identifier; ``member_id`` is the contact ID used to add or remove it.
    """

    member_id: UUID
    user_id: str
    custom_name: str
    whatsapp_name: str = ""
    unread_count: int = 0


class MemberListResponse(BaseModel):
    success: bool = True
    members: list[GroupMember]


class AddMembersResponse(BaseModel):
    success: bool = True
    message: str
    added: int
