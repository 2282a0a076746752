"""
Group and group-membership API router.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from chatcrm.auth.middleware import CurrentUserDep
from chatcrm.contacts.schemas import MessageResponse
from chatcrm.groups.schemas import (
    AddMembersRequest,
    AddMembersResponse,
    GroupCreatedResponse,
    GroupCreateRequest,
    GroupEnvelope,
    GroupListResponse,
    GroupUpdateRequest,
    MemberListResponse,
)
from chatcrm.groups.service import GroupService
from chatcrm.shared.database import get_db_session
from chatcrm.shared.http import handler_boundary

router = APIRouter(prefix="/api/groups", tags=["groups"])


def get_group_service(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> GroupService:
    """Dependency for group service."""
    return GroupService(session=session)


GroupServiceDep = Annotated[GroupService, Depends(get_group_service)]


@router.get("", response_model=GroupListResponse, summary="List groups")
async def list_groups(
    current_user: CurrentUserDep,
    service: GroupServiceDep,
) -> GroupListResponse:
    """The caller's groups with member counts, newest first."""
    with handler_boundary("Failed to fetch groups", user_id=str(current_user.id)):
        return await service.list_groups(current_user.id)


@router.post("", response_model=GroupCreatedResponse, summary="Create group")
async def create_group(
    body: GroupCreateRequest,
    current_user: CurrentUserDep,
    service: GroupServiceDep,
) -> GroupCreatedResponse:
    with handler_boundary("Failed to create group", user_id=str(current_user.id)):
        return await service.create_group(current_user.id, body)


@router.put("/{group_id}", response_model=GroupEnvelope, summary="Update group")
async def update_group(
    group_id: str,
    body: GroupUpdateRequest,
    current_user: CurrentUserDep,
    service: GroupServiceDep,
) -> GroupEnvelope:
    with handler_boundary("Failed to update group", user_id=str(current_user.id)):
        return await service.update_group(current_user.id, group_id, body)


@router.delete("/{group_id}", response_model=MessageResponse, summary="Delete group")
async def delete_group(
    group_id: str,
    current_user: CurrentUserDep,
    service: GroupServiceDep,
) -> MessageResponse:
    """Delete a group; its memberships are removed with it."""
    with handler_boundary("Failed to delete group", user_id=str(current_user.id)):
        await service.delete_group(current_user.id, group_id)
        return MessageResponse(message="Group deleted successfully")


@router.get(
    "/{group_id}/members",
    response_model=MemberListResponse,
    summary="List group members",
)
async def list_members(
    group_id: str,
    current_user: CurrentUserDep,
    service: GroupServiceDep,
) -> MemberListResponse:
    with handler_boundary("Failed to fetch group members", user_id=str(current_user.id)):
        return await service.list_members(current_user.id, group_id)


@router.post(
    "/{group_id}/members",
    response_model=AddMembersResponse,
    summary="Add group members",
)
async def add_members(
    group_id: str,
    body: AddMembersRequest,
    current_user: CurrentUserDep,
    service: GroupServiceDep,
) -> AddMembersResponse:
    """Add contacts to the group. Contacts already in it are skipped."""
    with handler_boundary("Failed to add group members", user_id=str(current_user.id)):
        return await service.add_members(current_user.id, group_id, body)


@router.delete(
    "/{group_id}/members",
    response_model=MessageResponse,
    summary="Remove group member",
)
async def remove_member(
    group_id: str,
    current_user: CurrentUserDep,
    service: GroupServiceDep,
    user_id: Annotated[str | None, Query(alias="userId", description="Contact ID")] = None,
) -> MessageResponse:
    with handler_boundary("Failed to remove group member", user_id=str(current_user.id)):
        await service.remove_member(current_user.id, group_id, user_id)
        return MessageResponse(message="Member removed successfully")
