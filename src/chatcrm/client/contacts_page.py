"""
Contacts page controller: list, filter, add, edit and delete contacts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from chatcrm.client.api import ApiError, ChatCRMClient
from chatcrm.client.group_dialog import matches
from chatcrm.shared.logging import get_logger

logger = get_logger(__name__)


def parse_tags(raw: str) -> Optional[list[str]]:
    """Split a comma-separated tag string; blank input means no tags."""
    tags = [tag.strip() for tag in raw.split(",") if tag.strip()]
    return tags or None


@dataclass
class ContactForm:
    phone_number: str = ""
    custom_name: str = ""
    email: str = ""
    company: str = ""
    position: str = ""
    address: str = ""
    notes: str = ""
    tags: str = ""
    # Not editable on the page; carried so an update does not clear it.
    whatsapp_name: Optional[str] = field(default=None, repr=False)

    @classmethod
    def from_contact(cls, contact: dict[str, Any]) -> "ContactForm":
        return cls(
            phone_number=contact["phone_number"],
            custom_name=contact.get("custom_name") or "",
            email=contact.get("email") or "",
            company=contact.get("company") or "",
            position=contact.get("position") or "",
            address=contact.get("address") or "",
            notes=contact.get("notes") or "",
            tags=", ".join(contact.get("tags") or []),
            whatsapp_name=contact.get("whatsapp_name"),
        )

    def payload(self) -> dict[str, Any]:
        """camelCase body shared by create and update."""
        return {
            "customName": self.custom_name.strip(),
            "whatsappName": self.whatsapp_name,
            "email": self.email.strip() or None,
            "company": self.company.strip() or None,
            "position": self.position.strip() or None,
            "address": self.address.strip() or None,
            "notes": self.notes.strip() or None,
            "tags": parse_tags(self.tags),
        }


class ContactsPage:
    """State behind the contacts management page."""

    def __init__(self, api: ChatCRMClient) -> None:
        self._api = api
        self.contacts: list[dict[str, Any]] = []
        self.search_term = ""
        self.is_loading = False
        self.is_saving = False
        self.error: Optional[str] = None

        self.show_form = False
        self.editing: Optional[dict[str, Any]] = None
        self.form = ContactForm()

    @property
    def filtered_contacts(self) -> list[dict[str, Any]]:
        term = self.search_term.strip()
        if not term:
            return list(self.contacts)
        return [c for c in self.contacts if matches(c, term)]

    async def load(self) -> None:
        self.is_loading = True
        try:
            self.contacts = await self._api.list_contacts()
        except (ApiError, httpx.HTTPError):
            logger.exception("Error loading contacts")
            self.error = "Failed to load contacts"
        finally:
            self.is_loading = False

    def start_add(self) -> None:
        self.editing = None
        self.form = ContactForm()
        self.show_form = True
        self.error = None

    def start_edit(self, contact: dict[str, Any]) -> None:
        self.editing = contact
        self.form = ContactForm.from_contact(contact)
        self.show_form = True
        self.error = None

    async def save(self) -> bool:
        """Submit the form; True when stored and the form is closed."""
        if self.is_saving:
            return False
        if self.editing is not None:
            return await self._save_edit(self.editing["id"])
        return await self._save_new()

    async def _save_edit(self, contact_id: str) -> bool:
        if not self.form.custom_name.strip():
            self.error = "Name is required"
            return False

        self.is_saving = True
        self.error = None
        try:
            await self._api.update_contact(contact_id, self.form.payload())
        except (ApiError, httpx.HTTPError):
            logger.exception("Error updating contact", extra={"contact_id": contact_id})
            self.error = "Failed to update contact"
            return False
        finally:
            self.is_saving = False

        await self.load()
        self.show_form = False
        return True

    async def _save_new(self) -> bool:
        if not self.form.phone_number.strip() or not self.form.custom_name.strip():
            self.error = "Phone number and name are required"
            return False

        self.is_saving = True
        self.error = None
        payload = {"phoneNumber": self.form.phone_number.strip(), **self.form.payload()}
        try:
            await self._api.create_contact(payload)
        except ApiError as e:
            if e.status_code == 409:
                self.error = "Contact with this phone number already exists"
            else:
                logger.warning("Error creating contact", extra={"status_code": e.status_code})
                self.error = "Failed to create contact"
            return False
        except httpx.HTTPError:
            logger.exception("Error creating contact")
            self.error = "Failed to create contact"
            return False
        finally:
            self.is_saving = False

        await self.load()
        self.show_form = False
        return True

    async def delete(self, contact_id: str) -> bool:
        """Remove the contact locally at once; reload if the server refuses."""
        self.error = None
        self.contacts = [c for c in self.contacts if c["id"] != contact_id]
        try:
            await self._api.delete_contact(contact_id)
        except ApiError as e:
            await self.load()
            self.error = f"Failed to delete contact: {e.message}"
            return False
        except httpx.HTTPError as e:
            logger.exception("Error deleting contact", extra={"contact_id": contact_id})
            await self.load()
            self.error = f"Failed to delete contact: {e}"
            return False

        logger.info("Contact deleted", extra={"contact_id": contact_id})
        return True
