"""
Contact service for business logic.
"""

from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from chatcrm.contacts.models import Contact
from chatcrm.contacts.repository import ContactRepository
from chatcrm.contacts.schemas import (
    ContactCreateRequest,
    ContactListResponse,
    ContactResponse,
    ContactSearchResponse,
    ContactUpdateRequest,
)
from chatcrm.shared.exceptions import ConflictError, NotFoundError, ValidationError
from chatcrm.shared.logging import get_logger

logger = get_logger(__name__)

UNIQUE_VIOLATION = "23505"


def parse_id(raw: str | UUID, what: str = "Contact") -> UUID:
    """Parse a path identifier; malformed IDs are reported as not found."""
    if isinstance(raw, UUID):
        return raw
    try:
        return UUID(str(raw))
    except ValueError:
        raise NotFoundError(f"{what} not found") from None


def is_unique_violation(exc: IntegrityError) -> bool:
    """True when the integrity error comes from a UNIQUE constraint."""
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code is not None:
        return code == UNIQUE_VIOLATION
    return "unique" in str(orig).lower()


class ContactService:
    """Service for contact management operations."""

    def __init__(
        self,
        session: AsyncSession,
        contact_repository: ContactRepository | None = None,
    ) -> None:
        """Initialize contact service.

        Args:
            session: Async database session.
            contact_repository: Optional contact repository (for DI).
        """
        self._session = session
        self._contact_repo = contact_repository or ContactRepository(session)

    async def list_contacts(self, caller_id: UUID) -> ContactListResponse:
        """All of the caller's contacts by custom name."""
        contacts = await self._contact_repo.list_for_caller(caller_id)
        return ContactListResponse(
            contacts=[ContactResponse.model_validate(c) for c in contacts],
            count=len(contacts),
        )

    async def get_contact(self, caller_id: UUID, contact_id: str | UUID) -> ContactResponse:
        """Get one contact of the caller.

        Raises:
            NotFoundError: If absent or owned by someone else.
        """
        contact = await self._contact_repo.get(caller_id, parse_id(contact_id))
        if contact is None:
            raise NotFoundError("Contact not found")
        return ContactResponse.model_validate(contact)

    async def search_contacts(
        self,
        caller_id: UUID,
        query: str = "",
        tag: str | None = None,
    ) -> ContactSearchResponse:
        """Free-text and tag search over the caller's contacts."""
        contacts = await self._contact_repo.search(caller_id, query=query or None, tag=tag or None)
        return ContactSearchResponse(
            contacts=[ContactResponse.model_validate(c) for c in contacts],
            count=len(contacts),
            query=query,
            tag=tag,
        )

    async def create_contact(
        self,
        caller_id: UUID,
        request: ContactCreateRequest,
    ) -> ContactResponse:
        """Create a contact owned by the caller.

        Args:
            caller_id: Account ID of the caller.
            request: Normalized create body.

        Returns:
            The stored contact.

        Raises:
            ValidationError: If phone number or custom name is missing.
            ConflictError: If the caller already has a contact with this phone number.
        """
        if not request.phone_number or not request.custom_name:
            raise ValidationError("Phone number and name are required")

        contact = Contact(
            phone_number=request.phone_number,
            last_active=datetime.now(timezone.utc),
            **request.profile_values(),
        )

        try:
            contact = await self._contact_repo.create(caller_id, contact)
            response = ContactResponse.model_validate(contact)
            await self._session.commit()
        except IntegrityError as e:
            await self._session.rollback()
            if is_unique_violation(e):
                logger.info(
                    "Duplicate contact rejected",
                    extra={"user_id": str(caller_id), "phone_number": request.phone_number},
                )
                raise ConflictError("Contact with this phone number already exists") from e
            raise

        logger.info(
            "Contact created",
            extra={"user_id": str(caller_id), "contact_id": str(response.id)},
        )
        return response

    async def update_contact(
        self,
        caller_id: UUID,
        contact_id: str | UUID,
        request: ContactUpdateRequest,
    ) -> ContactResponse:
        """Replace the profile fields of one contact; phone and owner stay fixed.

        Raises:
            ValidationError: If custom name is missing.
            NotFoundError: If absent or owned by someone else.
        """
        if not request.custom_name:
            raise ValidationError("Name is required")

        contact = await self._contact_repo.update(
            caller_id,
            parse_id(contact_id),
            request.profile_values(),
        )
        if contact is None:
            raise NotFoundError("Contact not found")

        response = ContactResponse.model_validate(contact)
        await self._session.commit()

        logger.info(
            "Contact updated",
            extra={"user_id": str(caller_id), "contact_id": str(response.id)},
        )
        return response

    async def delete_contact(self, caller_id: UUID, contact_id: str | UUID) -> None:
        """Delete one contact; its memberships go with it.

        Raises:
            NotFoundError: If absent or owned by someone else.
        """
        deleted = await self._contact_repo.delete(caller_id, parse_id(contact_id))
        if not deleted:
            raise NotFoundError("Contact not found")

        await self._session.commit()
        logger.info(
            "Contact deleted",
            extra={"user_id": str(caller_id), "contact_id": str(contact_id)},
        )
