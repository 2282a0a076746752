"""
Tests for authentication at the HTTP boundary.
"""

from httpx import AsyncClient
import pytest


class TestAuthentication:
    @pytest.mark.asyncio
    async def test_missing_credentials(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/api/contacts")

        assert response.status_code == 401
        body = response.json()
        assert body["error"] == "Unauthorized"
        assert body["details"]["code"] == "MISSING_CREDENTIALS"

    @pytest.mark.asyncio
    async def test_expired_token(self, async_client: AsyncClient, expired_access_token: str) -> None:
        response = await async_client.get(
            "/api/groups",
            headers={"Authorization": f"Bearer {expired_access_token}"},
        )

        assert response.status_code == 401
        assert response.json()["details"]["code"] == "TOKEN_EXPIRED"

    @pytest.mark.asyncio
    async def test_invalid_token(self, async_client: AsyncClient) -> None:
        response = await async_client.get(
            "/api/contacts/search",
            headers={"Authorization": "Bearer garbage"},
        )

        assert response.status_code == 401
        assert response.json()["details"]["code"] == "INVALID_TOKEN"

    @pytest.mark.asyncio
    async def test_rejected_before_body_validation(self, async_client: AsyncClient) -> None:
        response = await async_client.post("/api/contacts", json={"customName": 5})

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_health_is_public(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}
