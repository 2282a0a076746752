"""
Create / edit group dialog controller.

Holds the dialog state the chat UI renders: the form fields, the caller's
contacts, the selected member set and a single error message. Saving in edit
mode only touches the membership delta between the stored and the selected
members.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Optional

import httpx

from chatcrm.client.api import ApiError, ChatCRMClient
from chatcrm.shared.logging import get_logger

logger = get_logger(__name__)


def matches(contact: dict[str, Any], term: str) -> bool:
    """Case-insensitive substring match on name, phone, WhatsApp name, email or company."""
    needle = term.lower()
    fields = ("custom_name", "phone_number", "whatsapp_name", "email", "company")
    return any(needle in (contact.get(field) or "").lower() for field in fields)


class GroupManagementDialog:
    """State machine behind the group dialog.

    Args:
        api: Client bound to the caller.
        group: Group summary (``group_id``, ``group_name``,
            ``group_description``) when editing; None when creating.
        on_saved: Awaited after a successful save.
    """

    def __init__(
        self,
        api: ChatCRMClient,
        group: Optional[dict[str, Any]] = None,
        on_saved: Optional[Callable[[], Awaitable[None]]] = None,
    ) -> None:
        self._api = api
        self._on_saved = on_saved
        self.group = group

        self.is_open = False
        self.name = ""
        self.description = ""
        self.selected_ids: list[str] = []
        self.search_term = ""
        self.contacts: list[dict[str, Any]] = []
        self.is_loading_contacts = False
        self.is_saving = False
        self.error: Optional[str] = None

    @property
    def is_edit(self) -> bool:
        return self.group is not None

    async def open(self) -> None:
        """Show the dialog, load contacts and, when editing, the current members."""
        self.is_open = True
        self.error = None
        self.search_term = ""
        if self.group is not None:
            self.name = self.group.get("group_name") or ""
            self.description = self.group.get("group_description") or ""
        else:
            self.name = ""
            self.description = ""
            self.selected_ids = []

        await self.load_contacts()
        if self.group is not None:
            await self.load_group_members(self.group["group_id"])

    def close(self) -> None:
        self.is_open = False

    async def load_contacts(self) -> None:
        self.is_loading_contacts = True
        try:
            self.contacts = await self._api.list_contacts()
        except (ApiError, httpx.HTTPError):
            logger.exception("Error loading contacts")
            self.error = "Failed to load contacts"
        finally:
            self.is_loading_contacts = False

    async def load_group_members(self, group_id: str) -> None:
        # A failure leaves the selection empty; the error banner is for contacts only.
        try:
            members = await self._api.list_group_members(group_id)
        except (ApiError, httpx.HTTPError):
            logger.exception("Error loading group members", extra={"group_id": group_id})
            return
        self.selected_ids = [str(m["member_id"]) for m in members]

    def toggle(self, contact_id: str) -> None:
        if contact_id in self.selected_ids:
            self.selected_ids = [cid for cid in self.selected_ids if cid != contact_id]
        else:
            self.selected_ids = [*self.selected_ids, contact_id]

    @property
    def filtered_contacts(self) -> list[dict[str, Any]]:
        if not self.search_term:
            return list(self.contacts)
        return [c for c in self.contacts if matches(c, self.search_term)]

    async def save(self) -> bool:
        """Validate and persist the dialog.

        Returns:
            True when the group was saved and the dialog closed.
        """
        if self.is_saving:
            return False
        if not self.name.strip():
            self.error = "Group name is required"
            return False
        if not self.selected_ids:
            self.error = "Please select at least one member"
            return False

        self.is_saving = True
        self.error = None
        try:
            if self.group is not None:
                await self._save_edit(self.group["group_id"])
            else:
                await self._save_create()
        except ApiError as e:
            logger.warning("Error saving group", extra={"status_code": e.status_code})
            self.error = e.message
            return False
        except httpx.HTTPError:
            logger.exception("Error saving group")
            self.error = "Failed to save group"
            return False
        finally:
            self.is_saving = False

        if self._on_saved is not None:
            await self._on_saved()
        self.close()
        return True

    async def _save_create(self) -> None:
        try:
            await self._api.create_group(self.name, self.description, list(self.selected_ids))
        except ApiError as e:
            raise ApiError(e.status_code, "Failed to create group", e.details) from e

    async def _save_edit(self, group_id: str) -> None:
        try:
            await self._api.update_group(group_id, self.name, self.description)
        except ApiError as e:
            raise ApiError(e.status_code, "Failed to update group", e.details) from e

        # Diff against what is stored now, not what was loaded on open.
        current = [str(m["member_id"]) for m in await self._api.list_group_members(group_id)]
        to_remove = [cid for cid in current if cid not in self.selected_ids]
        to_add = [cid for cid in self.selected_ids if cid not in current]

        for contact_id in to_remove:
            await self._api.remove_group_member(group_id, contact_id)
        if to_add:
            await self._api.add_group_members(group_id, to_add)

        logger.info(
            "Group memberships synced",
            extra={"group_id": group_id, "added": len(to_add), "removed": len(to_remove)},
        )
