"""Unit tests for the Role entity and RoleSnapshot."""

import pytest

from rolekeeper.domain.entities import (
    DEFAULT_ROLE_COLOR,
    PermissionKey,
    Role,
    RolePatch,
    RoleSnapshot,
    User,
)


class TestRole:
    """Test suite for Role."""

    def test_defaults(self):
        """Test a role created with only id and name."""
        role = Role(id="cashier", name="Cashier")

        assert role.color == DEFAULT_ROLE_COLOR
        assert role.position == 0
        assert role.permissions == {}
        assert role.is_default is False
        assert role.is_protected is False
        assert role.revision == 0

    def test_permissions_not_shared_between_instances(self):
        """Test each role gets its own permission map."""
        first = Role(id="a", name="A")
        second = Role(id="b", name="B")

        first.permissions["roles.view"] = True

        assert second.permissions == {}

    @pytest.mark.parametrize("role_id,name", [("", "Name"), ("id", "")])
    def test_id_and_name_required(self, role_id, name):
        """Test empty id or name is rejected."""
        with pytest.raises(ValueError):
            Role(id=role_id, name=name)

    def test_flags_are_independent(self):
        """Test a role may be both default and protected."""
        role = Role(id="owner", name="Owner", is_default=True, is_protected=True)

        assert role.is_default and role.is_protected

    def test_grants(self):
        """Test grants reads only exact True values for cataloged keys."""
        role = Role(
            id="clerk",
            name="Clerk",
            permissions={"inventory.add": True, "inventory.edit": "yes", "bogus.key": True},
        )

        assert role.grants(PermissionKey.INVENTORY_ADD) is True
        assert role.grants("inventory.add") is True
        assert role.grants("inventory.edit") is False
        assert role.grants("inventory.delete") is False
        assert role.grants("bogus.key") is False

    def test_protected_role_own_map_is_not_bypassed(self):
        """Test grants ignores the protected bypass."""
        role = Role(id="developer", name="Developer", is_protected=True)

        assert role.grants("roles.manage") is False


class TestRoleSnapshot:
    """Test suite for RoleSnapshot."""

    def test_empty(self):
        """Test the empty snapshot."""
        snapshot = RoleSnapshot()

        assert len(snapshot) == 0
        assert list(snapshot) == []
        assert snapshot.find("staff") is None
        assert snapshot.loaded_at is None

    def test_from_roles_orders_by_position_then_id(self):
        """Test roles are ordered by position with id as tiebreaker."""
        snapshot = RoleSnapshot.from_roles([
            Role(id="staff", name="Staff", position=100),
            Role(id="zeta", name="Zeta", position=5),
            Role(id="alpha", name="Alpha", position=5),
            Role(id="developer", name="Developer", position=0),
        ])

        assert [role.id for role in snapshot] == ["developer", "alpha", "zeta", "staff"]

    def test_find_and_contains(self):
        """Test id lookups."""
        snapshot = RoleSnapshot.from_roles([Role(id="staff", name="Staff")])

        assert snapshot.find("staff").name == "Staff"
        assert "staff" in snapshot
        assert "ghost" not in snapshot
        assert snapshot.find(None) is None
        assert snapshot.find(["staff"]) is None
        assert 42 not in snapshot

    def test_snapshot_is_immutable(self):
        """Test the snapshot cannot be reassigned in place."""
        snapshot = RoleSnapshot.from_roles([Role(id="staff", name="Staff")])

        with pytest.raises(AttributeError):
            snapshot.roles = ()


class TestRolePatch:
    """Test suite for RolePatch."""

    def test_is_empty(self):
        """Test detecting a patch that changes nothing."""
        assert RolePatch().is_empty() is True
        assert RolePatch(name="Lead").is_empty() is False
        assert RolePatch(permissions={}).is_empty() is False


class TestUser:
    """Test suite for User."""

    def test_defaults(self):
        """Test a user without role assignments."""
        user = User(id="u1")

        assert user.role_ids == []
        assert user.role is None
