"""
Group service for business logic.

Every group operation first resolves the group among the caller's own
groups; an absent group and a foreign group are indistinguishable to the
caller ("Group not found or unauthorized").
"""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from chatcrm.contacts.policies import can_add_membership
from chatcrm.contacts.repository import ContactRepository
from chatcrm.contacts.service import parse_id
from chatcrm.groups.models import ChatGroup
from chatcrm.groups.repository import GroupRepository, MembershipRepository
from chatcrm.groups.schemas import (
    AddMembersRequest,
    AddMembersResponse,
    GroupCreateRequest,
    GroupCreatedResponse,
    GroupEnvelope,
    GroupListResponse,
    GroupMember,
    GroupResponse,
    GroupSummary,
    GroupUpdateRequest,
    MemberListResponse,
)
from chatcrm.shared.exceptions import NotFoundError, ValidationError
from chatcrm.shared.logging import get_logger

logger = get_logger(__name__)

GROUP_NOT_FOUND = "Group not found or unauthorized"


def _unique_ids(raw_ids: list[str]) -> list[UUID]:
    """Parse contact IDs, dropping repeats while keeping order."""
    seen: dict[UUID, None] = {}
    for raw in raw_ids:
        seen.setdefault(parse_id(raw), None)
    return list(seen)


class GroupService:
    """Service for groups and their members."""

    def __init__(
        self,
        session: AsyncSession,
        group_repository: GroupRepository | None = None,
        membership_repository: MembershipRepository | None = None,
        contact_repository: ContactRepository | None = None,
    ) -> None:
        self._session = session
        self._group_repo = group_repository or GroupRepository(session)
        self._membership_repo = membership_repository or MembershipRepository(session)
        self._contact_repo = contact_repository or ContactRepository(session)

    async def _owned_group(self, caller_id: UUID, group_id: str | UUID) -> ChatGroup:
        try:
            parsed = parse_id(group_id, what="Group")
        except NotFoundError:
            raise NotFoundError(GROUP_NOT_FOUND) from None
        group = await self._group_repo.get_owned(caller_id, parsed)
        if group is None:
            raise NotFoundError(GROUP_NOT_FOUND)
        return group

    async def _insert_members(self, caller_id: UUID, group: ChatGroup, raw_ids: list[str]) -> int:
        """Insert memberships after checking the caller owns every contact.

        Raises:
            NotFoundError: If any contact is absent or owned by someone else.
        """
        contact_ids = _unique_ids(raw_ids)
        contacts = await self._contact_repo.get_many(caller_id, contact_ids)
        owners = {c.id: c.owner_id for c in contacts}

        missing = [
            str(cid)
            for cid in contact_ids
            if not can_add_membership(caller_id, owners.get(cid), group.owner_id)
        ]
        if missing:
            raise NotFoundError("Contact not found", details={"contact_ids": missing})

        return await self._membership_repo.add(caller_id, group.id, contact_ids)

    async def list_groups(self, caller_id: UUID) -> GroupListResponse:
        """The caller's groups with member counts, newest first."""
        rows = await self._group_repo.list_with_counts(caller_id)
        return GroupListResponse(
            groups=[
                GroupSummary(
                    group_id=group.id,
                    group_name=group.name,
                    group_description=group.description,
                    member_count=count,
                )
                for group, count in rows
            ]
        )

    async def create_group(
        self,
        caller_id: UUID,
        request: GroupCreateRequest,
    ) -> GroupCreatedResponse:
        """Create a group and add the initial members in one transaction.

        Raises:
            ValidationError: If the name is missing.
            NotFoundError: If a member is not one of the caller's contacts.
        """
        if not request.name:
            raise ValidationError("Group name is required")

        group = await self._group_repo.create(
            caller_id,
            ChatGroup(name=request.name, description=request.description),
        )
        try:
            added = await self._insert_members(caller_id, group, request.member_ids)
        except NotFoundError:
            await self._session.rollback()
            raise

        response = GroupResponse.model_validate(group)
        await self._session.commit()

        logger.info(
            "Group created",
            extra={"user_id": str(caller_id), "group_id": str(response.id), "added": added},
        )
        return GroupCreatedResponse(group=response, added=added)

    async def update_group(
        self,
        caller_id: UUID,
        group_id: str | UUID,
        request: GroupUpdateRequest,
    ) -> GroupEnvelope:
        """Rename / re-describe an owned group."""
        if not request.name:
            raise ValidationError("Group name is required")

        group = await self._owned_group(caller_id, group_id)
        group = await self._group_repo.update(
            caller_id,
            group.id,
            {"name": request.name, "description": request.description},
        )
        if group is None:
            raise NotFoundError(GROUP_NOT_FOUND)

        response = GroupResponse.model_validate(group)
        await self._session.commit()
        logger.info("Group updated", extra={"user_id": str(caller_id), "group_id": str(response.id)})
        return GroupEnvelope(group=response)

    async def delete_group(self, caller_id: UUID, group_id: str | UUID) -> None:
        """Delete an owned group together with its memberships."""
        group = await self._owned_group(caller_id, group_id)
        deleted = await self._group_repo.delete(caller_id, group.id)
        if not deleted:
            raise NotFoundError(GROUP_NOT_FOUND)

        await self._session.commit()
        logger.info("Group deleted", extra={"user_id": str(caller_id), "group_id": str(group.id)})

    async def list_members(self, caller_id: UUID, group_id: str | UUID) -> MemberListResponse:
        """Members of an owned group with their contact details.

        Raises:
            NotFoundError: If the group is absent or not owned by the caller.
        """
        group = await self._owned_group(caller_id, group_id)
        rows = await self._membership_repo.list_members(caller_id, group.id)
        return MemberListResponse(
            members=[
                GroupMember(
                    member_id=contact_id,
                    user_id=phone_number or "",
                    custom_name=custom_name or "",
                    whatsapp_name=whatsapp_name or "",
                )
                for contact_id, phone_number, custom_name, whatsapp_name in rows
            ]
        )

    async def add_members(
        self,
        caller_id: UUID,
        group_id: str | UUID,
        request: AddMembersRequest,
    ) -> AddMembersResponse:
        """Add contacts to an owned group; pairs already present are skipped.

        Raises:
            ValidationError: If no contact IDs are given.
            NotFoundError: If the group or any contact is not the caller's.
        """
        if not request.user_ids:
            raise ValidationError("User IDs array is required")

        group = await self._owned_group(caller_id, group_id)
        added = await self._insert_members(caller_id, group, request.user_ids)
        await self._session.commit()

        logger.info(
            "Group members added",
            extra={
                "user_id": str(caller_id),
                "group_id": str(group.id),
                "requested": len(request.user_ids),
                "added": added,
            },
        )
        return AddMembersResponse(
            message=f"{added} member(s) added successfully",
            added=added,
        )

    async def remove_member(
        self,
        caller_id: UUID,
        group_id: str | UUID,
        contact_id: str | None,
    ) -> None:
        """Remove one contact from an owned group.

        Removing a contact that is not a member is a no-op.

        Raises:
            ValidationError: If no contact ID is given.
            NotFoundError: If the group is absent or not owned by the caller.
        """
        if not contact_id:
            raise ValidationError("User ID is required")

        group = await self._owned_group(caller_id, group_id)
        removed = await self._membership_repo.remove(caller_id, group.id, parse_id(contact_id))
        await self._session.commit()

        logger.info(
            "Group member removed",
            extra={
                "user_id": str(caller_id),
                "group_id": str(group.id),
                "contact_id": contact_id,
                "removed": removed,
            },
        )
