"""
Contact repository for database operations.

Every method takes the caller's account ID. It is bound to the transaction
for the database policies and also applied as an explicit owner filter.
"""

from typing import Any, Protocol, Sequence
from uuid import UUID

from sqlalchemy import ColumnElement, Select, delete, func, literal, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from chatcrm.auth.repository import UserRepository
from chatcrm.contacts.models import Contact
from chatcrm.contacts.policies import can_write_contact, contact_visible_to
from chatcrm.shared.database import bind_caller, dialect_name
from chatcrm.shared.exceptions import NotFoundError

SEARCH_COLUMNS = (
    Contact.custom_name,
    Contact.whatsapp_name,
    Contact.phone_number,
    Contact.email,
    Contact.company,
)


class ContactRepositoryProtocol(Protocol):
    """Protocol for contact repository operations."""

    async def list_for_caller(self, caller_id: UUID) -> Sequence[Contact]: ...

    async def get(self, caller_id: UUID, contact_id: UUID) -> Contact | None: ...

    async def search(
        self,
        caller_id: UUID,
        query: str | None = None,
        tag: str | None = None,
    ) -> Sequence[Contact]: ...

    async def create(self, caller_id: UUID, contact: Contact) -> Contact: ...

    async def update(
        self,
        caller_id: UUID,
        contact_id: UUID,
        values: dict[str, Any],
    ) -> Contact | None: ...

    async def delete(self, caller_id: UUID, contact_id: UUID) -> bool: ...


class ContactRepository:
    """Repository for contact database operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async database session.
        """
        self._session = session

    def _owned(self, caller_id: UUID) -> Select[tuple[Contact]]:
        # Explicit owner filter plus the policy predicate; both are kept.
        stmt = select(Contact).where(Contact.owner_id == caller_id)
        return stmt.where(contact_visible_to(caller_id))

    def _tag_filter(self, tag: str) -> ColumnElement[bool]:
        if dialect_name(self._session) == "postgresql":
            return Contact.tags.contains([tag])
        values = func.json_each(Contact.tags).table_valued("value")
        return select(literal(1)).select_from(values).where(values.c.value == tag).exists()

    async def list_for_caller(self, caller_id: UUID) -> Sequence[Contact]:
        """All contacts of the caller, by custom name ascending, nulls last."""
        await bind_caller(self._session, caller_id)
        stmt = self._owned(caller_id).order_by(Contact.custom_name.asc().nulls_last())
        result = await self._session.execute(stmt)
        return result.scalars().all()

    async def get(self, caller_id: UUID, contact_id: UUID) -> Contact | None:
        """Get one contact of the caller.

        Args:
            caller_id: Account ID of the caller.
            contact_id: Contact UUID.

        Returns:
            Contact if found and owned by the caller, None otherwise.
        """
        await bind_caller(self._session, caller_id)
        stmt = self._owned(caller_id).where(Contact.id == contact_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_many(self, caller_id: UUID, contact_ids: list[UUID]) -> Sequence[Contact]:
        """Contacts of the caller among ``contact_ids``; unknown or foreign IDs are dropped."""
        if not contact_ids:
            return []
        await bind_caller(self._session, caller_id)
        stmt = self._owned(caller_id).where(Contact.id.in_(contact_ids))
        result = await self._session.execute(stmt)
        return result.scalars().all()

    async def search(
        self,
        caller_id: UUID,
        query: str | None = None,
        tag: str | None = None,
    ) -> Sequence[Contact]:
        """Search the caller's contacts.

        Args:
            caller_id: Account ID of the caller.
            query: Case-insensitive substring matched against name, WhatsApp
                name, phone number, email and company.
            tag: Exact tag the contact's tag set must contain.

        Returns:
            Matching contacts by custom name ascending, nulls last. Both
            filters are ANDed when both are given.
        """
        await bind_caller(self._session, caller_id)
        stmt = self._owned(caller_id)

        if query:
            stmt = stmt.where(
                or_(*(column.icontains(query, autoescape=True) for column in SEARCH_COLUMNS))
            )
        if tag:
            stmt = stmt.where(self._tag_filter(tag))

        stmt = stmt.order_by(Contact.custom_name.asc().nulls_last())
        result = await self._session.execute(stmt)
        return result.scalars().all()

    async def create(self, caller_id: UUID, contact: Contact) -> Contact:
        """Insert a contact, defaulting its owner to the caller.

        Raises:
            NotFoundError: If the contact names another owner.
            sqlalchemy.exc.IntegrityError: If (owner, phone number) already exists.
        """
        await bind_caller(self._session, caller_id)
        if contact.owner_id is None:
            contact.owner_id = caller_id
        if not can_write_contact(caller_id, contact.owner_id):
            raise NotFoundError("Contact owner does not match caller")
        await UserRepository(self._session).ensure(caller_id)

        self._session.add(contact)
        await self._session.flush()
        await self._session.refresh(contact)
        return contact

    async def update(
        self,
        caller_id: UUID,
        contact_id: UUID,
        values: dict[str, Any],
    ) -> Contact | None:
        """Apply ``values`` to one of the caller's contacts.

        Phone number and owner are never written, whatever ``values`` holds.
        The row is always rewritten, so ``updated_at`` moves even when no
        value changed.

        Returns:
            The refreshed contact, or None if absent / not owned.
        """
        contact = await self.get(caller_id, contact_id)
        if contact is None:
            return None

        for field, value in values.items():
            if field in {"id", "owner_id", "phone_number", "created_at", "updated_at"}:
                continue
            setattr(contact, field, value)
        contact.updated_at = func.now()

        await self._session.flush()
        await self._session.refresh(contact)
        return contact

    async def delete(self, caller_id: UUID, contact_id: UUID) -> bool:
        """Delete one of the caller's contacts; memberships cascade in the database.

        Returns:
            True if a row was deleted.
        """
        await bind_caller(self._session, caller_id)
        stmt = (
            delete(Contact)
            .where(Contact.id == contact_id, Contact.owner_id == caller_id)
            .where(contact_visible_to(caller_id))
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return (result.rowcount or 0) > 0
