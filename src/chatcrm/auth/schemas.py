"""
Pydantic schemas for authentication.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class TokenPayload(BaseModel):
    """Claims of an identity-provider session JWT."""

    model_config = ConfigDict(extra="ignore")

    sub: UUID = Field(..., description="Account ID of the caller")
    exp: datetime = Field(..., description="Expiration time")
    iat: datetime | None = Field(None, description="Issued at time")
    email: str | None = Field(None, description="Account email")
    role: str | None = Field(None, description="Identity-provider role")
    aud: str | list[str] | None = Field(None, description="Audience")


class CurrentUser(BaseModel):
    """Current authenticated caller."""

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(..., description="Account ID")
    email: str = Field(default="", description="Account email")
    role: str = Field(default="authenticated", description="Identity-provider role")
