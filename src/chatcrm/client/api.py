"""
Async HTTP client for the contacts and groups API.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

from chatcrm.shared.logging import get_logger

logger = get_logger(__name__)


class ApiError(Exception):
    """Non-2xx response from the API, carrying its ``{error, details?}`` body."""

    def __init__(self, status_code: int, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.details = details


class ChatCRMClient:
    """Thin wrapper over ``httpx.AsyncClient`` bound to one caller's token.

    Usage::

        async with ChatCRMClient("http://localhost:8000", token) as api:
            contacts = await api.list_contacts()
    """

    def __init__(
        self,
        base_url: str,
        access_token: str,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={"Authorization": f"Bearer {access_token}"},
            transport=transport,
            timeout=timeout,
        )

    async def __aenter__(self) -> "ChatCRMClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        response = await self._client.request(method, path, **kwargs)
        if response.is_success:
            return response.json()

        try:
            body = response.json()
        except ValueError:
            body = {}
        message = body.get("error") if isinstance(body, dict) else None
        details = body.get("details") if isinstance(body, dict) else None

        logger.warning(
            "API request failed",
            extra={"method": method, "path": path, "status_code": response.status_code},
        )
        raise ApiError(response.status_code, message or response.reason_phrase, details)

    # Contacts

    async def list_contacts(self) -> list[dict[str, Any]]:
        data = await self._request("GET", "/api/contacts")
        return data["contacts"]

    async def get_contact(self, contact_id: str) -> dict[str, Any]:
        data = await self._request("GET", f"/api/contacts/{contact_id}")
        return data["contact"]

    async def search_contacts(self, query: str = "", tag: Optional[str] = None) -> list[dict[str, Any]]:
        params: dict[str, str] = {"q": query}
        if tag:
            params["tag"] = tag
        data = await self._request("GET", "/api/contacts/search", params=params)
        return data["contacts"]

    async def create_contact(self, payload: dict[str, Any]) -> dict[str, Any]:
        """POST a camelCase contact body; returns the stored contact."""
        data = await self._request("POST", "/api/contacts", json=payload)
        return data["contact"]

    async def update_contact(self, contact_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        data = await self._request("PUT", f"/api/contacts/{contact_id}", json=payload)
        return data["contact"]

    async def delete_contact(self, contact_id: str) -> None:
        await self._request("DELETE", f"/api/contacts/{contact_id}")

    # Groups

    async def list_groups(self) -> list[dict[str, Any]]:
        data = await self._request("GET", "/api/groups")
        return data["groups"]

    async def create_group(
        self,
        name: str,
        description: Optional[str],
        member_ids: list[str],
    ) -> dict[str, Any]:
        return await self._request(
            "POST",
            "/api/groups",
            json={"name": name, "description": description, "memberIds": member_ids},
        )

    async def update_group(self, group_id: str, name: str, description: Optional[str]) -> dict[str, Any]:
        data = await self._request(
            "PUT",
            f"/api/groups/{group_id}",
            json={"name": name, "description": description},
        )
        return data["group"]

    async def delete_group(self, group_id: str) -> None:
        await self._request("DELETE", f"/api/groups/{group_id}")

    async def list_group_members(self, group_id: str) -> list[dict[str, Any]]:
        data = await self._request("GET", f"/api/groups/{group_id}/members")
        return data["members"]

    async def add_group_members(self, group_id: str, contact_ids: list[str]) -> int:
        """Returns how many memberships were actually inserted."""
        data = await self._request(
            "POST",
            f"/api/groups/{group_id}/members",
            json={"userIds": contact_ids},
        )
        return data["added"]

    async def remove_group_member(self, group_id: str, contact_id: str) -> None:
        await self._request(
            "DELETE",
            f"/api/groups/{group_id}/members",
            params={"userId": contact_id},
        )
