"""
Group and membership repositories for database operations.
"""

from typing import Any, Sequence
from uuid import UUID, uuid4

from sqlalchemy import Row, delete, distinct, func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from chatcrm.auth.repository import UserRepository
from chatcrm.contacts.models import Contact
from chatcrm.contacts.policies import group_visible_to, membership_visible_to
from chatcrm.groups.models import ChatGroup, ContactGroup
from chatcrm.shared.database import bind_caller, dialect_name


class GroupRepository:
    """Repository for chat group database operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async database session.
        """
        self._session = session

    async def get_owned(self, caller_id: UUID, group_id: UUID) -> ChatGroup | None:
        """Get a group if the caller owns it.

        Args:
            caller_id: Account ID of the caller.
            group_id: Group UUID.

        Returns:
            ChatGroup if found and owned, None otherwise.
        """
        await bind_caller(self._session, caller_id)
        stmt = select(ChatGroup).where(
            ChatGroup.id == group_id,
            ChatGroup.owner_id == caller_id,
            group_visible_to(caller_id),
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_with_counts(self, caller_id: UUID) -> Sequence[Row[tuple[ChatGroup, int]]]:
        """The caller's groups with their contact member counts, newest first."""
        await bind_caller(self._session, caller_id)
        stmt = (
            select(ChatGroup, func.count(distinct(Contact.id)).label("member_count"))
            .outerjoin(ContactGroup, ContactGroup.group_id == ChatGroup.id)
            .outerjoin(Contact, Contact.id == ContactGroup.contact_id)
            .where(ChatGroup.owner_id == caller_id, group_visible_to(caller_id))
            .group_by(ChatGroup.id)
            .order_by(ChatGroup.created_at.desc())
        )
        result = await self._session.execute(stmt)
        return result.all()

    async def create(self, caller_id: UUID, group: ChatGroup) -> ChatGroup:
        """Insert a group owned by the caller."""
        await bind_caller(self._session, caller_id)
        await UserRepository(self._session).ensure(caller_id)
        group.owner_id = caller_id
        self._session.add(group)
        await self._session.flush()
        await self._session.refresh(group)
        return group

    async def update(
        self,
        caller_id: UUID,
        group_id: UUID,
        values: dict[str, Any],
    ) -> ChatGroup | None:
        """Apply ``values`` to an owned group; None if absent / not owned."""
        group = await self.get_owned(caller_id, group_id)
        if group is None:
            return None
        for field, value in values.items():
            setattr(group, field, value)
        await self._session.flush()
        await self._session.refresh(group)
        return group

    async def delete(self, caller_id: UUID, group_id: UUID) -> bool:
        """Delete an owned group; memberships cascade in the database."""
        await bind_caller(self._session, caller_id)
        stmt = (
            delete(ChatGroup)
            .where(ChatGroup.id == group_id, ChatGroup.owner_id == caller_id)
            .where(group_visible_to(caller_id))
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return (result.rowcount or 0) > 0


class MembershipRepository:
    """Repository for contact_groups rows."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_members(
        self,
        caller_id: UUID,
        group_id: UUID,
    ) -> Sequence[Row[tuple[UUID, str, str, str | None]]]:
        """Members of a group joined with their contact details.

        Returns:
            Rows of (contact_id, phone_number, custom_name, whatsapp_name)
            in the order they were added.
        """
        await bind_caller(self._session, caller_id)
        stmt = (
            select(
                ContactGroup.contact_id,
                Contact.phone_number,
                Contact.custom_name,
                Contact.whatsapp_name,
            )
            .join(Contact, Contact.id == ContactGroup.contact_id)
            .where(ContactGroup.group_id == group_id, membership_visible_to(caller_id))
            .order_by(ContactGroup.added_at.asc(), Contact.custom_name.asc())
        )
        result = await self._session.execute(stmt)
        return result.all()

    async def add(self, caller_id: UUID, group_id: UUID, contact_ids: list[UUID]) -> int:
        """Insert memberships, skipping pairs that already exist.

        Returns:
            Number of rows actually inserted.
        """
        if not contact_ids:
            return 0
        await bind_caller(self._session, caller_id)

        insert = pg_insert if dialect_name(self._session) == "postgresql" else sqlite_insert
        rows = [
            {
                "id": uuid4(),
                "contact_id": contact_id,
                "group_id": group_id,
                "added_by": caller_id,
            }
            for contact_id in contact_ids
        ]
        stmt = (
            insert(ContactGroup)
            .values(rows)
            .on_conflict_do_nothing(index_elements=["contact_id", "group_id"])
            .returning(ContactGroup.id)
        )
        result = await self._session.execute(stmt)
        return len(result.scalars().all())

    async def remove(self, caller_id: UUID, group_id: UUID, contact_id: UUID) -> int:
        """Delete one membership row; returns the number of rows removed."""
        await bind_caller(self._session, caller_id)
        stmt = (
            delete(ContactGroup)
            .where(
                ContactGroup.group_id == group_id,
                ContactGroup.contact_id == contact_id,
                membership_visible_to(caller_id),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount or 0
