"""Pytest configuration for all tests."""

from datetime import datetime, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from rolekeeper.core.config import Settings, get_settings
from rolekeeper.domain.entities import Role
from rolekeeper.infrastructure.persistence import models  # noqa: F401  registers tables
from rolekeeper.infrastructure.persistence.database import Base
from rolekeeper.infrastructure.persistence.repositories import (
    RoleRepository,
    RoleSettingsRepository,
)


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Drop cached settings so environment tweaks in one test don't leak."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    """Settings for tests, independent of any local .env file."""
    return Settings(_env_file=None, environment="testing", database_url="sqlite+aiosqlite:///:memory:")


@pytest_asyncio.fixture
async def engine():
    """Create an in-memory SQLite engine with all tables."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def role_repository(session_factory) -> RoleRepository:
    """Role repository over the empty test database."""
    return RoleRepository(session_factory)


@pytest_asyncio.fixture
async def role_settings_repository(session_factory, settings) -> RoleSettingsRepository:
    """Roles settings repository over the empty test database."""
    return RoleSettingsRepository(session_factory, settings)


def make_role(
    role_id: str,
    position: int,
    permissions: dict | None = None,
    **kwargs,
) -> Role:
    """Build a role with sensible defaults for tests."""
    now = datetime.now(timezone.utc)
    return Role(
        id=role_id,
        name=kwargs.pop("name", role_id.capitalize()),
        color=kwargs.pop("color", "#6b7280"),
        position=position,
        permissions=permissions or {},
        created_at=now,
        updated_at=now,
        **kwargs,
    )


@pytest.fixture
def role_factory():
    """Expose make_role to tests."""
    return make_role


@pytest_asyncio.fixture
async def seeded_repository(role_repository) -> RoleRepository:
    """Repository holding Developer, Staff, Manager and Cashier, refreshed.

    - developer: protected, position 0, empty map
    - manager: position 10, roles.view + roles.manage + inventory.*
    - cashier: position 50, transactions.create
    - staff: default, position 100, page.home.view
    """
    roles = [
        make_role("developer", 0, name="Developer", color="#ef4444", is_protected=True),
        make_role(
            "manager",
            10,
            {
                "roles.view": True,
                "roles.manage": True,
                "inventory.add": True,
                "inventory.edit": True,
                "page.inventory.view": True,
            },
        ),
        make_role("cashier", 50, {"transactions.create": True, "page.home.view": True}),
        make_role("staff", 100, {"page.home.view": True}, name="Staff", color="#3b82f6", is_default=True),
    ]
    for role in roles:
        await role_repository.put(role)
    await role_repository.refresh()
    return role_repository
