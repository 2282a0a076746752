"""
API integration tests for the contacts router.
"""

from datetime import datetime, timezone
from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from chatcrm.auth.jwt import JWTService
from chatcrm.auth.models import User
from chatcrm.contacts.router import get_contact_service
from chatcrm.groups.models import ContactGroup


class TestCreateContact:
    """Tests for POST /api/contacts."""

    @pytest.mark.asyncio
    async def test_create_trims_and_defaults(
        self,
        async_client: AsyncClient,
        auth_headers: dict[str, str],
        owner: User,
    ) -> None:
        response = await async_client.post(
            "/api/contacts",
            json={
                "phoneNumber": " +393331234567 ",
                "customName": "  Anna Rossi ",
                "email": "   ",
                "company": "ACME",
                "tags": ["vip", "milano"],
            },
            headers=auth_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Contact created successfully"
        contact = body["contact"]
        assert contact["phone_number"] == "+393331234567"
        assert contact["custom_name"] == "Anna Rossi"
        assert contact["email"] is None
        assert contact["company"] == "ACME"
        assert contact["tags"] == ["vip", "milano"]
        assert contact["owner_id"] == str(owner.id)
        assert contact["last_active"] is not None

    @pytest.mark.asyncio
    async def test_first_write_provisions_account(
        self,
        async_client: AsyncClient,
        jwt_service: JWTService,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        newcomer = uuid4()
        headers = {"Authorization": f"Bearer {jwt_service.create_access_token(user_id=newcomer)}"}

        response = await async_client.post(
            "/api/contacts",
            json={"phoneNumber": "+3901", "customName": "Anna"},
            headers=headers,
        )

        assert response.status_code == 200
        assert response.json()["contact"]["owner_id"] == str(newcomer)
        async with session_factory() as session:
            assert await session.get(User, newcomer) is not None

        second = await async_client.post(
            "/api/contacts",
            json={"phoneNumber": "+3902", "customName": "Bruno"},
            headers=headers,
        )
        assert second.status_code == 200

    @pytest.mark.asyncio
    async def test_non_list_tags_stored_absent(
        self,
        async_client: AsyncClient,
        auth_headers: dict[str, str],
    ) -> None:
        response = await async_client.post(
            "/api/contacts",
            json={"phoneNumber": "+3901", "customName": "Anna", "tags": "vip"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["contact"]["tags"] is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            {"customName": "Anna"},
            {"phoneNumber": "+3901"},
            {"phoneNumber": "   ", "customName": "Anna"},
            {"phoneNumber": "+3901", "customName": "  "},
        ],
    )
    async def test_required_fields(
        self,
        async_client: AsyncClient,
        auth_headers: dict[str, str],
        payload: dict[str, str],
    ) -> None:
        response = await async_client.post("/api/contacts", json=payload, headers=auth_headers)

        assert response.status_code == 400
        assert response.json() == {"error": "Phone number and name are required"}

    @pytest.mark.asyncio
    async def test_malformed_body(
        self,
        async_client: AsyncClient,
        auth_headers: dict[str, str],
    ) -> None:
        response = await async_client.post(
            "/api/contacts",
            json={"phoneNumber": "+3901", "customName": 42},
            headers=auth_headers,
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Invalid request"
        assert body["details"][0]["field"] == "body.customName"

    @pytest.mark.asyncio
    async def test_duplicate_phone_conflicts(
        self,
        async_client: AsyncClient,
        auth_headers: dict[str, str],
        owner: User,
        make_contact,
    ) -> None:
        await make_contact(owner.id, "+3901", "Anna")

        response = await async_client.post(
            "/api/contacts",
            json={"phoneNumber": "+3901", "customName": "Anna again"},
            headers=auth_headers,
        )

        assert response.status_code == 409
        assert response.json() == {"error": "Contact with this phone number already exists"}

    @pytest.mark.asyncio
    async def test_same_phone_for_different_owners(
        self,
        async_client: AsyncClient,
        auth_headers: dict[str, str],
        other_owner: User,
        make_contact,
    ) -> None:
        await make_contact(other_owner.id, "+3901", "Their Anna")

        response = await async_client.post(
            "/api/contacts",
            json={"phoneNumber": "+3901", "customName": "My Anna"},
            headers=auth_headers,
        )

        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_owner_in_body_is_ignored(
        self,
        async_client: AsyncClient,
        auth_headers: dict[str, str],
        owner: User,
        other_owner: User,
    ) -> None:
        response = await async_client.post(
            "/api/contacts",
            json={"phoneNumber": "+3901", "customName": "Anna", "ownerId": str(other_owner.id)},
            headers=auth_headers,
        )

        assert response.json()["contact"]["owner_id"] == str(owner.id)


class TestReadContacts:
    """Tests for list, get and search."""

    @pytest.mark.asyncio
    async def test_list_only_own_sorted(
        self,
        async_client: AsyncClient,
        auth_headers: dict[str, str],
        owner: User,
        other_owner: User,
        make_contact,
    ) -> None:
        await make_contact(owner.id, "+3902", "Bruno")
        await make_contact(owner.id, "+3901", "Anna")
        await make_contact(other_owner.id, "+3903", "Carla")

        response = await async_client.get("/api/contacts", headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["count"] == 2
        assert [c["custom_name"] for c in body["contacts"]] == ["Anna", "Bruno"]

    @pytest.mark.asyncio
    async def test_list_empty(self, async_client: AsyncClient, auth_headers: dict[str, str]) -> None:
        response = await async_client.get("/api/contacts", headers=auth_headers)

        assert response.json() == {"success": True, "contacts": [], "count": 0}

    @pytest.mark.asyncio
    async def test_get_own(
        self,
        async_client: AsyncClient,
        auth_headers: dict[str, str],
        owner: User,
        make_contact,
    ) -> None:
        anna = await make_contact(owner.id, "+3901", "Anna")

        response = await async_client.get(f"/api/contacts/{anna.id}", headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["contact"]["id"] == str(anna.id)
        assert "message" not in body

    @pytest.mark.asyncio
    async def test_get_foreign_is_not_found(
        self,
        async_client: AsyncClient,
        auth_headers: dict[str, str],
        other_owner: User,
        make_contact,
    ) -> None:
        theirs = await make_contact(other_owner.id, "+3903", "Carla")

        response = await async_client.get(f"/api/contacts/{theirs.id}", headers=auth_headers)

        assert response.status_code == 404
        assert response.json() == {"error": "Contact not found"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("contact_id", ["does-not-exist", str(uuid4())])
    async def test_get_unknown(
        self,
        async_client: AsyncClient,
        auth_headers: dict[str, str],
        contact_id: str,
    ) -> None:
        response = await async_client.get(f"/api/contacts/{contact_id}", headers=auth_headers)

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_search_by_text_and_tag(
        self,
        async_client: AsyncClient,
        auth_headers: dict[str, str],
        owner: User,
        make_contact,
    ) -> None:
        await make_contact(owner.id, "+3901", "Anna", company="ACME", tags=["vip"])
        await make_contact(owner.id, "+3902", "Bruno", company="Acme Labs", tags=["vip2"])
        await make_contact(owner.id, "+3903", "Carla", tags=["vip"])

        response = await async_client.get(
            "/api/contacts/search",
            params={"q": "acme", "tag": "vip"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["query"] == "acme"
        assert body["tag"] == "vip"
        assert body["count"] == 1
        assert body["contacts"][0]["custom_name"] == "Anna"

    @pytest.mark.asyncio
    async def test_search_without_filters_lists_all(
        self,
        async_client: AsyncClient,
        auth_headers: dict[str, str],
        owner: User,
        make_contact,
    ) -> None:
        await make_contact(owner.id, "+3901", "Anna")
        await make_contact(owner.id, "+3902", "Bruno")

        response = await async_client.get("/api/contacts/search", headers=auth_headers)

        body = response.json()
        assert body["count"] == 2
        assert body["query"] == ""
        assert body["tag"] is None


class TestUpdateContact:
    """Tests for PUT /api/contacts/{id}."""

    @pytest.mark.asyncio
    async def test_update_profile(
        self,
        async_client: AsyncClient,
        auth_headers: dict[str, str],
        owner: User,
        make_contact,
    ) -> None:
        anna = await make_contact(owner.id, "+3901", "Anna", company="ACME", notes="old")

        response = await async_client.put(
            f"/api/contacts/{anna.id}",
            json={"customName": "Anna Rossi", "company": "Initech", "phoneNumber": "+0000"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Contact updated successfully"
        contact = body["contact"]
        assert contact["custom_name"] == "Anna Rossi"
        assert contact["company"] == "Initech"
        assert contact["phone_number"] == "+3901"
        assert contact["owner_id"] == str(owner.id)
        # Omitted optional fields are cleared.
        assert contact["notes"] is None

    @pytest.mark.asyncio
    async def test_update_requires_name(
        self,
        async_client: AsyncClient,
        auth_headers: dict[str, str],
        owner: User,
        make_contact,
    ) -> None:
        anna = await make_contact(owner.id, "+3901", "Anna")

        response = await async_client.put(
            f"/api/contacts/{anna.id}",
            json={"customName": "   "},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Name is required"}

    @pytest.mark.asyncio
    async def test_unchanged_update_bumps_updated_at(
        self,
        async_client: AsyncClient,
        auth_headers: dict[str, str],
        owner: User,
        make_contact,
    ) -> None:
        stale = datetime(2020, 1, 1, tzinfo=timezone.utc)
        anna = await make_contact(owner.id, "+3901", "Anna", updated_at=stale)

        response = await async_client.put(
            f"/api/contacts/{anna.id}",
            json={"customName": "Anna"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert not response.json()["contact"]["updated_at"].startswith("2020")

    @pytest.mark.asyncio
    async def test_update_foreign_is_not_found(
        self,
        async_client: AsyncClient,
        auth_headers: dict[str, str],
        other_owner: User,
        make_contact,
    ) -> None:
        theirs = await make_contact(other_owner.id, "+3903", "Carla")

        response = await async_client.put(
            f"/api/contacts/{theirs.id}",
            json={"customName": "Hijacked"},
            headers=auth_headers,
        )

        assert response.status_code == 404


class TestDeleteContact:
    """Tests for DELETE /api/contacts/{id}."""

    @pytest.mark.asyncio
    async def test_delete_removes_memberships(
        self,
        async_client: AsyncClient,
        auth_headers: dict[str, str],
        owner: User,
        make_contact,
        make_group,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        anna = await make_contact(owner.id, "+3901", "Anna")
        await make_group(owner.id, "Clienti", members=[anna])

        response = await async_client.delete(f"/api/contacts/{anna.id}", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Contact deleted successfully"}

        follow_up = await async_client.get(f"/api/contacts/{anna.id}", headers=auth_headers)
        assert follow_up.status_code == 404

        async with session_factory() as session:
            remaining = await session.scalar(select(func.count()).select_from(ContactGroup))
        assert remaining == 0

    @pytest.mark.asyncio
    async def test_delete_foreign_is_not_found(
        self,
        async_client: AsyncClient,
        auth_headers: dict[str, str],
        other_headers: dict[str, str],
        other_owner: User,
        make_contact,
    ) -> None:
        theirs = await make_contact(other_owner.id, "+3903", "Carla")

        response = await async_client.delete(f"/api/contacts/{theirs.id}", headers=auth_headers)
        assert response.status_code == 404

        still_there = await async_client.get(f"/api/contacts/{theirs.id}", headers=other_headers)
        assert still_there.status_code == 200


class TestUnexpectedFailures:
    @pytest.mark.asyncio
    async def test_generic_500(
        self,
        api_app,
        async_client: AsyncClient,
        auth_headers: dict[str, str],
    ) -> None:
        class BrokenService:
            async def list_contacts(self, caller_id):
                raise RuntimeError("connection reset")

        api_app.dependency_overrides[get_contact_service] = lambda: BrokenService()

        response = await async_client.get("/api/contacts", headers=auth_headers)

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to fetch contacts"}
