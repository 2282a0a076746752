"""
Pytest configuration and fixtures.

API tests run the real app against a file-backed SQLite database with
foreign keys enabled, so cascades behave as on PostgreSQL.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import timedelta
from pathlib import Path
from typing import Any
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from chatcrm.auth.jwt import JWTService
from chatcrm.auth.models import User
from chatcrm.config import Settings, get_settings
from chatcrm.contacts.models import Contact
from chatcrm.groups.models import ChatGroup, ContactGroup
from chatcrm.main import app
from chatcrm.shared.database import Base, get_db_session


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Create test settings."""
    return Settings(
        app_env="dev",
        debug=True,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'chatcrm.db'}",
        jwt_secret_key="test-secret-key-for-testing-only",
        jwt_audience="authenticated",
        jwt_access_token_expire_minutes=60,
    )


@pytest_asyncio.fixture
async def db_engine(test_settings: Settings) -> AsyncGenerator[AsyncEngine, None]:
    """Create test database engine with the schema in place."""
    engine = create_async_engine(test_settings.database_url, echo=False)

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection: Any, _: Any) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async with session_factory() as session:
        yield session


async def _make_user(factory: async_sessionmaker[AsyncSession], email: str) -> User:
    async with factory() as session:
        user = User(id=uuid4(), email=email)
        session.add(user)
        await session.commit()
        return user


@pytest_asyncio.fixture
async def owner(session_factory: async_sessionmaker[AsyncSession]) -> User:
    """The authenticated caller in most tests."""
    return await _make_user(session_factory, "owner@example.com")


@pytest_asyncio.fixture
async def other_owner(session_factory: async_sessionmaker[AsyncSession]) -> User:
    """A second account whose rows must stay invisible to ``owner``."""
    return await _make_user(session_factory, "other@example.com")


@pytest.fixture
def make_contact(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[..., Awaitable[Contact]]:
    """Insert a contact directly, bypassing the API."""

    async def _make(owner_id: UUID, phone_number: str, custom_name: str, **fields: Any) -> Contact:
        async with session_factory() as session:
            contact = Contact(
                owner_id=owner_id,
                phone_number=phone_number,
                custom_name=custom_name,
                **fields,
            )
            session.add(contact)
            await session.commit()
            await session.refresh(contact)
            return contact

    return _make


@pytest.fixture
def make_group(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[..., Awaitable[ChatGroup]]:
    """Insert a group (and optional members) directly."""

    async def _make(
        owner_id: UUID,
        name: str,
        members: list[Contact] | None = None,
        **fields: Any,
    ) -> ChatGroup:
        async with session_factory() as session:
            group = ChatGroup(owner_id=owner_id, name=name, **fields)
            session.add(group)
            await session.flush()
            for contact in members or []:
                session.add(ContactGroup(contact_id=contact.id, group_id=group.id, added_by=owner_id))
            await session.commit()
            await session.refresh(group)
            return group

    return _make


@pytest.fixture
def jwt_service(test_settings: Settings) -> JWTService:
    """Create JWT service with test settings."""
    return JWTService(settings=test_settings)


@pytest.fixture
def owner_token(jwt_service: JWTService, owner: User) -> str:
    return jwt_service.create_access_token(user_id=owner.id, email=owner.email)


@pytest.fixture
def other_token(jwt_service: JWTService, other_owner: User) -> str:
    return jwt_service.create_access_token(user_id=other_owner.id, email=other_owner.email)


@pytest.fixture
def expired_access_token(jwt_service: JWTService, owner: User) -> str:
    """Create expired access token."""
    return jwt_service.create_access_token(
        user_id=owner.id,
        expires_delta=timedelta(hours=-1),
    )


@pytest.fixture
def auth_headers(owner_token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {owner_token}"}


@pytest.fixture
def other_headers(other_token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {other_token}"}


@pytest.fixture
def api_app(
    test_settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
) -> Any:
    """The app wired to the test database and settings."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_get_db
    app.dependency_overrides[get_settings] = lambda: test_settings
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def async_client(api_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API tests."""
    transport = ASGITransport(app=api_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
