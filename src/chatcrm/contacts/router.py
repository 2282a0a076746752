"""
Contact API router.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from chatcrm.auth.middleware import CurrentUserDep
from chatcrm.contacts.schemas import (
    ContactCreateRequest,
    ContactEnvelope,
    ContactListResponse,
    ContactSavedResponse,
    ContactSearchResponse,
    ContactUpdateRequest,
    MessageResponse,
)
from chatcrm.contacts.service import ContactService
from chatcrm.shared.database import get_db_session
from chatcrm.shared.http import handler_boundary

router = APIRouter(prefix="/api/contacts", tags=["contacts"])


def get_contact_service(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> ContactService:
    """Dependency for contact service."""
    return ContactService(session=session)


ContactServiceDep = Annotated[ContactService, Depends(get_contact_service)]


@router.get(
    "",
    response_model=ContactListResponse,
    summary="List contacts",
    description="All contacts of the caller ordered by custom name.",
)
async def list_contacts(
    current_user: CurrentUserDep,
    service: ContactServiceDep,
) -> ContactListResponse:
    with handler_boundary("Failed to fetch contacts", user_id=str(current_user.id)):
        return await service.list_contacts(current_user.id)


@router.post(
    "",
    response_model=ContactSavedResponse,
    status_code=status.HTTP_200_OK,
    summary="Create contact",
    responses={409: {"description": "Phone number already used by one of the caller's contacts"}},
)
async def create_contact(
    body: ContactCreateRequest,
    current_user: CurrentUserDep,
    service: ContactServiceDep,
) -> ContactSavedResponse:
    """Create a contact.

    Phone number and custom name are required. String fields are trimmed and
    empty optional fields stored as absent; last-active is set to now.
    """
    with handler_boundary("Failed to create contact", user_id=str(current_user.id)):
        contact = await service.create_contact(current_user.id, body)
        return ContactSavedResponse(contact=contact, message="Contact created successfully")


@router.get(
    "/search",
    response_model=ContactSearchResponse,
    summary="Search contacts",
)
async def search_contacts(
    current_user: CurrentUserDep,
    service: ContactServiceDep,
    q: Annotated[str, Query(description="Case-insensitive substring")] = "",
    tag: Annotated[str | None, Query(description="Exact tag")] = None,
) -> ContactSearchResponse:
    """Search by name, WhatsApp name, phone, email or company, and/or by tag."""
    with handler_boundary("Failed to search contacts", user_id=str(current_user.id)):
        return await service.search_contacts(current_user.id, query=q, tag=tag)


@router.get(
    "/{contact_id}",
    response_model=ContactEnvelope,
    summary="Get contact",
)
async def get_contact(
    contact_id: str,
    current_user: CurrentUserDep,
    service: ContactServiceDep,
) -> ContactEnvelope:
    with handler_boundary("Failed to fetch contact", user_id=str(current_user.id)):
        contact = await service.get_contact(current_user.id, contact_id)
        return ContactEnvelope(contact=contact)


@router.put(
    "/{contact_id}",
    response_model=ContactSavedResponse,
    summary="Update contact",
)
async def update_contact(
    contact_id: str,
    body: ContactUpdateRequest,
    current_user: CurrentUserDep,
    service: ContactServiceDep,
) -> ContactSavedResponse:
    """Update a contact. Phone number and owner cannot be changed."""
    with handler_boundary("Failed to update contact", user_id=str(current_user.id)):
        contact = await service.update_contact(current_user.id, contact_id, body)
        return ContactSavedResponse(contact=contact, message="Contact updated successfully")


@router.delete(
    "/{contact_id}",
    response_model=MessageResponse,
    summary="Delete contact",
)
async def delete_contact(
    contact_id: str,
    current_user: CurrentUserDep,
    service: ContactServiceDep,
) -> MessageResponse:
    with handler_boundary("Failed to delete contact", user_id=str(current_user.id)):
        await service.delete_contact(current_user.id, contact_id)
        return MessageResponse(message="Contact deleted successfully")
