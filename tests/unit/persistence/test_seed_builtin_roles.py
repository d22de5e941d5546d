"""Unit tests for built-in role seeding."""

import pytest
from sqlalchemy import select

from rolekeeper.domain.entities import DEFAULT_STAFF_PERMISSIONS, RolePatch
from rolekeeper.domain.services import RoleAdministrationService, can
from rolekeeper.infrastructure.persistence.database import seed_builtin_roles
from rolekeeper.infrastructure.persistence.models import RoleModel, SystemSettingModel


class TestSeedBuiltinRoles:
    """Test suite for seed_builtin_roles."""

    @pytest.mark.asyncio
    async def test_seeds_developer_and_staff(self, db_session, settings, role_repository):
        """Test both built-in roles and the settings document are created."""
        inserted = await seed_builtin_roles(db_session, settings)

        assert inserted == ["developer", "staff"]

        developer = await role_repository.fetch("developer")
        assert developer.is_protected is True
        assert developer.is_default is False
        assert developer.position == 0
        assert developer.color == "#ef4444"
        assert developer.permissions == {}

        staff = await role_repository.fetch("staff")
        assert staff.is_default is True
        assert staff.is_protected is False
        assert staff.position == 100
        assert staff.permissions == DEFAULT_STAFF_PERMISSIONS

        document = await db_session.get(SystemSettingModel, "roles")
        assert document.value == {"maxRolesPerUser": 5}

    @pytest.mark.asyncio
    async def test_idempotent(self, db_session, settings):
        """Test reseeding inserts nothing new."""
        await seed_builtin_roles(db_session, settings)

        assert await seed_builtin_roles(db_session, settings) == []
        result = await db_session.execute(select(RoleModel))
        assert len(result.scalars().all()) == 2

    @pytest.mark.asyncio
    async def test_existing_edits_survive(self, db_session, settings, role_repository):
        """Test reseeding leaves administrators' changes to Staff alone."""
        await seed_builtin_roles(db_session, settings)
        service = RoleAdministrationService(role_repository)
        await service.update_role("staff", RolePatch(name="Crew"))

        await seed_builtin_roles(db_session, settings)

        assert (await role_repository.fetch("staff")).name == "Crew"

    @pytest.mark.asyncio
    async def test_seeded_roles_resolve(self, db_session, settings, role_repository):
        """Test seeded roles behave as expected under resolution."""
        await seed_builtin_roles(db_session, settings)
        snapshot = await role_repository.refresh()

        assert can(["developer"], "debug.tools.access", snapshot) is True
        assert can(["staff"], "transactions.create", snapshot) is True
        assert can(["staff"], "roles.manage", snapshot) is False

    @pytest.mark.asyncio
    async def test_uses_configured_ids(self, db_session, settings, role_repository):
        """Test the built-in ids follow Settings."""
        settings.protected_role_id = "owner"
        settings.default_role_id = "crew"

        assert await seed_builtin_roles(db_session, settings) == ["owner", "crew"]
        assert (await role_repository.fetch("owner")).is_protected is True
