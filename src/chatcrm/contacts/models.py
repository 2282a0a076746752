"""
SQLAlchemy models for contacts.
"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import Mapped, mapped_column

from chatcrm.shared.database import Base

# TEXT[] with a GIN index on PostgreSQL; SQLite (tests) stores a JSON array.
TagList = ARRAY(Text).with_variant(JSON(), "sqlite")

OWNER_PHONE_CONSTRAINT = "contacts_owner_id_phone_number_key"


class Contact(Base):
    """One contact of one owner, keyed externally by phone number."""

    __tablename__ = "contacts"
    __table_args__ = (
        UniqueConstraint("owner_id", "phone_number", name=OWNER_PHONE_CONSTRAINT),
    )

    id: Mapped[UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid4,
    )
    owner_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    phone_number: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        index=True,
    )
    custom_name: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        index=True,
    )
    whatsapp_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    email: Mapped[str | None] = mapped_column(Text, nullable=True)
    company: Mapped[str | None] = mapped_column(Text, nullable=True)
    position: Mapped[str | None] = mapped_column(Text, nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    tags: Mapped[list[str] | None] = mapped_column(TagList, nullable=True)
    last_active: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:
        return f"<Contact(id={self.id}, phone={self.phone_number}, owner={self.owner_id})>"
