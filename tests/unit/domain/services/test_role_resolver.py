"""Unit tests for role resolution."""

from itertools import combinations
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from rolekeeper.domain.entities import PermissionKey, Role, RoleSnapshot, User
from rolekeeper.domain.services import (
    RoleResolver,
    can,
    fold_grants,
    get_effective_role_ids,
    granted_permissions,
    visible_roles,
)


@pytest.fixture
def roles() -> RoleSnapshot:
    """Staff, dev and a couple of ordinary roles."""
    return RoleSnapshot.from_roles([
        Role(id="dev", name="Dev", position=0, is_protected=True),
        Role(
            id="manager",
            name="Manager",
            position=2,
            permissions={"inventory.add": True, "inventory.delete": True, "roles.view": True},
        ),
        Role(
            id="cashier",
            name="Cashier",
            position=3,
            permissions={"transactions.create": True, "inventory.add": False},
        ),
        Role(
            id="staff",
            name="Staff",
            position=1,
            permissions={"inventory.add": True},
            is_default=True,
        ),
    ])


class TestGetEffectiveRoleIds:
    """Test suite for get_effective_role_ids."""

    def test_role_ids_returned_unchanged(self):
        """Test multi-role assignment wins over the legacy field."""
        user = User(id="u1", role_ids=["cashier", "staff"], role="manager")

        assert get_effective_role_ids(user) == ["cashier", "staff"]

    def test_order_and_duplicates_preserved(self):
        """Test ids are returned exactly as assigned."""
        user = User(id="u1", role_ids=["staff", "cashier", "staff"])

        assert get_effective_role_ids(user) == ["staff", "cashier", "staff"]

    def test_legacy_role_used_when_role_ids_empty(self):
        """Test fallback to the legacy singular role."""
        user = User(id="u1", role_ids=[], role="staff")

        assert get_effective_role_ids(user) == ["staff"]

    def test_no_roles(self):
        """Test a user with neither field set."""
        assert get_effective_role_ids(User(id="u1")) == []
        assert get_effective_role_ids(User(id="u1", role="")) == []

    def test_no_user(self):
        """Test nobody signed in."""
        assert get_effective_role_ids(None) == []

    def test_malformed_user(self):
        """Test malformed identity data resolves to no roles."""
        user = SimpleNamespace(role_ids="staff", role=42)

        assert get_effective_role_ids(user) == []

    def test_returns_a_copy(self):
        """Test mutating the result leaves the user alone."""
        user = User(id="u1", role_ids=["staff"])

        get_effective_role_ids(user).append("dev")

        assert user.role_ids == ["staff"]


class TestCan:
    """Test suite for can."""

    @pytest.mark.parametrize("key", list(PermissionKey))
    def test_no_roles_grants_nothing(self, roles, key):
        """Test can([], k) is false for every key."""
        assert can([], key, roles) is False

    @pytest.mark.parametrize("key", list(PermissionKey))
    def test_protected_role_grants_everything(self, roles, key):
        """Test the protected role bypasses every check."""
        assert can(["developer"], key, roles) is True
        assert can(["cashier", "developer"], key, roles) is True

    def test_protected_flag_grants_everything(self, roles):
        """Test a snapshot role flagged protected also bypasses."""
        assert can(["dev"], PermissionKey.DEBUG_TOOLS_ACCESS, roles) is True
        assert can(["staff", "dev"], "users.view.developer", roles) is True

    def test_protected_id_bypasses_even_without_snapshot(self):
        """Test the configured protected id needs no stored role."""
        assert can(["developer"], "roles.manage", RoleSnapshot()) is True
        assert can(["owner"], "roles.manage", [], protected_role_id="owner") is True

    def test_union_semantics(self, roles):
        """Test can(A + B, k) == can(A, k) or can(B, k) for all role sets."""
        ids = ["manager", "cashier", "staff", "ghost", "dev"]
        subsets = [list(combo) for size in range(len(ids) + 1) for combo in combinations(ids, size)]
        keys = [
            PermissionKey.INVENTORY_ADD,
            PermissionKey.INVENTORY_DELETE,
            PermissionKey.TRANSACTIONS_CREATE,
            PermissionKey.CUSTOMERS_DELETE,
        ]

        for a in subsets:
            for b in subsets:
                for key in keys:
                    assert can(a + b, key, roles) == (can(a, key, roles) or can(b, key, roles))
                    assert can(a + b, key, roles) == can(b + a, key, roles)

    def test_explicit_false_does_not_deny(self, roles):
        """Test there is no explicit deny: cashier's False can't cancel staff's True."""
        assert can(["cashier"], "inventory.add", roles) is False
        assert can(["cashier", "staff"], "inventory.add", roles) is True
        assert can(["staff", "cashier"], "inventory.add", roles) is True

    def test_unknown_role_ids_contribute_nothing(self, roles):
        """Test dangling role ids resolve to no access."""
        assert can(["ghost"], "inventory.add", roles) is False
        assert can(["ghost", "staff"], "inventory.add", roles) is True

    def test_unknown_key_is_false(self, roles):
        """Test uncataloged keys are never granted to ordinary roles."""
        assert can(["manager"], "inventory.teleport", roles) is False

    @pytest.mark.parametrize(
        "role_ids",
        [None, "staff", 42, [None], [42, ""], {"staff": True}],
    )
    def test_malformed_role_ids_never_raise(self, roles, role_ids):
        """Test malformed role ids resolve toward less access."""
        assert can(role_ids, "inventory.add", roles) is False

    def test_any_iterable_of_ids(self, roles):
        """Test generators and key views resolve like lists."""
        assert can((role_id for role_id in ["staff"]), "inventory.add", roles) is True
        assert can({"staff": 1}.keys(), "inventory.add", roles) is True
        assert can(iter(["cashier"]), "inventory.add", roles) is False

    def test_protected_role_in_iterator_bypasses(self, roles):
        """Test the bypass holds when the ids arrive as an iterator."""
        assert can(iter(["developer"]), "inventory.add", roles) is True
        assert can(iter(["dev"]), "debug.tools.access", roles) is True

    def test_malformed_permission_values(self):
        """Test anything other than exact True reads as not granted."""
        snapshot = RoleSnapshot.from_roles([
            Role(id="odd", name="Odd", permissions={"inventory.add": "true", "inventory.edit": 1}),
        ])

        assert can(["odd"], "inventory.add", snapshot) is False
        assert can(["odd"], "inventory.edit", snapshot) is False

    def test_accepts_plain_iterables_of_roles(self):
        """Test a list of roles works in place of a snapshot."""
        role_list = [Role(id="staff", name="Staff", permissions={"inventory.add": True})]

        assert can(["staff"], "inventory.add", role_list) is True
        assert can(["staff"], "inventory.add", None) is False

    def test_internal_error_denies(self, roles):
        """Test an unexpected failure inside the check denies access."""
        with patch(
            "rolekeeper.domain.services.role_resolver.fold_grants",
            side_effect=RuntimeError("boom"),
        ):
            assert can(["staff"], "inventory.add", roles) is False

    def test_end_to_end_scenario(self):
        """Test the reference staff/dev scenario."""
        snapshot = RoleSnapshot.from_roles([
            Role(
                id="staff",
                name="Staff",
                position=1,
                permissions={"inventory.add": True},
                is_default=True,
                is_protected=False,
            ),
            Role(id="dev", name="Dev", position=0, permissions={}, is_protected=True),
        ])

        assert can(["staff"], "inventory.add", snapshot) is True
        assert can(["staff"], "inventory.delete", snapshot) is False
        assert can(["dev"], "inventory.delete", snapshot) is True


class TestFoldGrants:
    """Test suite for fold_grants."""

    def test_empty_sequence(self):
        """Test folding nothing gives False."""
        assert fold_grants([], PermissionKey.INVENTORY_ADD) is False

    def test_any_true_wins(self):
        """Test OR semantics across maps."""
        maps = [{"inventory.add": False}, {}, {"inventory.add": True}]

        assert fold_grants(maps, PermissionKey.INVENTORY_ADD) is True
        assert fold_grants(maps, PermissionKey.INVENTORY_EDIT) is False


class TestGrantedPermissions:
    """Test suite for granted_permissions."""

    def test_union_of_keys(self, roles):
        """Test the granted set is the union of the roles' grants."""
        granted = granted_permissions(["cashier", "staff"], roles)

        assert granted == frozenset({PermissionKey.TRANSACTIONS_CREATE, PermissionKey.INVENTORY_ADD})

    def test_protected_role_gets_everything(self, roles):
        """Test the protected role is granted the whole catalog."""
        assert granted_permissions(["developer"], roles) == frozenset(PermissionKey)

    def test_no_roles(self, roles):
        """Test no roles means no keys."""
        assert granted_permissions([], roles) == frozenset()

    def test_generator_is_read_once(self, roles):
        """Test a generator of ids yields the full granted set."""
        granted = granted_permissions((role_id for role_id in ["cashier", "staff"]), roles)

        assert granted == frozenset({PermissionKey.TRANSACTIONS_CREATE, PermissionKey.INVENTORY_ADD})


class TestVisibleRoles:
    """Test suite for visible_roles."""

    def test_protected_roles_hidden_without_permission(self, roles):
        """Test ordinary viewers don't see protected roles."""
        listed = [role.id for role in visible_roles(["manager"], roles)]

        assert listed == ["staff", "manager", "cashier"]

    def test_protected_roles_shown_with_permission(self):
        """Test users.view.developer reveals protected roles."""
        snapshot = RoleSnapshot.from_roles([
            Role(id="developer", name="Developer", position=0, is_protected=True),
            Role(id="lead", name="Lead", position=1, permissions={"users.view.developer": True}),
        ])

        assert [role.id for role in visible_roles(["lead"], snapshot)] == ["developer", "lead"]

    def test_protected_viewer_sees_everything(self, roles):
        """Test the protected role sees all roles."""
        assert len(visible_roles(["dev"], roles)) == len(roles)


class TestRoleResolver:
    """Test suite for RoleResolver."""

    def test_follows_source_snapshot(self):
        """Test the resolver sees a new snapshot as soon as the source swaps it."""
        source = SimpleNamespace(snapshot=RoleSnapshot())
        resolver = RoleResolver(source)

        assert resolver.can(["staff"], "inventory.add") is False

        source.snapshot = RoleSnapshot.from_roles([
            Role(id="staff", name="Staff", permissions={"inventory.add": True}),
        ])

        assert resolver.can(["staff"], "inventory.add") is True

    def test_can_user(self, roles):
        """Test the user shortcut resolves effective ids first."""
        resolver = RoleResolver(SimpleNamespace(snapshot=roles))

        assert resolver.can_user(User(id="u1", role="staff"), "inventory.add") is True
        assert resolver.can_user(User(id="u2"), "inventory.add") is False
        assert resolver.can_user(None, "inventory.add") is False

    def test_custom_protected_role_id(self, roles):
        """Test the bypass follows the configured protected id."""
        resolver = RoleResolver(SimpleNamespace(snapshot=roles), protected_role_id="owner")

        assert resolver.can(["owner"], "debug.tools.access") is True
        assert resolver.can(["developer"], "debug.tools.access") is False
