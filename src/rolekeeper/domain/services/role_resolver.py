"""Role resolution service.

Pure authorization decisions over a role snapshot. Nothing in this module
performs I/O, mutates a role or raises on bad input: missing, malformed or
unknown data always resolves toward less access.

Multiple roles combine with OR logic. There is no explicit deny, so a grant
from any assigned role wins.
"""

from collections.abc import Iterable, Mapping
from functools import reduce
from typing import Any, Protocol

from rolekeeper.core.logging import get_logger
from rolekeeper.domain.entities import (
    PROTECTED_ROLE_ID,
    PermissionCatalog,
    PermissionKey,
    Role,
    RoleSnapshot,
    User,
)

logger = get_logger(__name__)


class SnapshotSource(Protocol):
    """Anything that holds the current role snapshot (e.g. RoleRepository)."""

    @property
    def snapshot(self) -> RoleSnapshot: ...


def get_effective_role_ids(user: User | None) -> list[str]:
    """Get the role ids an authorization decision applies to.

    Args:
        user: The current user, or None when nobody is signed in.

    Returns:
        ``user.role_ids`` unchanged when non-empty, else the legacy
        ``user.role`` wrapped in a list when set, else an empty list.
    """
    if user is None:
        return []

    role_ids = getattr(user, "role_ids", None)
    if isinstance(role_ids, (list, tuple)) and len(role_ids) > 0:
        return list(role_ids)

    legacy_role = getattr(user, "role", None)
    if isinstance(legacy_role, str) and legacy_role:
        return [legacy_role]

    return []


def fold_grants(permission_maps: Iterable[Mapping[str, Any]], key: PermissionKey) -> bool:
    """OR-fold an ordered sequence of permission maps for one key.

    The fold runs left to right so results are deterministic, even though
    the outcome does not depend on order. Only an exact ``True`` grants.
    """
    return reduce(
        lambda granted, permissions: granted or (
            isinstance(permissions, Mapping) and permissions.get(key.value) is True
        ),
        permission_maps,
        False,
    )


def _as_snapshot(roles: RoleSnapshot | Iterable[Role] | None) -> RoleSnapshot:
    if isinstance(roles, RoleSnapshot):
        return roles
    if roles is None:
        return RoleSnapshot()
    return RoleSnapshot.from_roles(role for role in roles if isinstance(role, Role))


def _clean_role_ids(role_ids: Any) -> list[str]:
    # A lone string or a mapping is not a collection of ids
    if isinstance(role_ids, (str, bytes, Mapping)) or not isinstance(role_ids, Iterable):
        return []
    return [role_id for role_id in role_ids if isinstance(role_id, str) and role_id]


def holds_protected_role(
    role_ids: Iterable[str],
    roles: RoleSnapshot | Iterable[Role] | None,
    protected_role_id: str = PROTECTED_ROLE_ID,
) -> bool:
    """Check whether any id names the protected role.

    An id counts when it equals the configured protected id, or when the
    snapshot role it names carries ``is_protected``.
    """
    snapshot = _as_snapshot(roles)
    for role_id in _clean_role_ids(role_ids):
        if role_id == protected_role_id:
            return True
        role = snapshot.find(role_id)
        if role is not None and role.is_protected is True:
            return True
    return False


def can(
    role_ids: Iterable[str] | None,
    permission_key: PermissionKey | str,
    roles: RoleSnapshot | Iterable[Role] | None,
    protected_role_id: str = PROTECTED_ROLE_ID,
) -> bool:
    """Decide whether a set of role ids grants a permission.

    Args:
        role_ids: Effective role ids (see get_effective_role_ids).
        permission_key: Catalog key to check.
        roles: Snapshot (or plain iterable) of the known roles.
        protected_role_id: Id of the role that bypasses every check.

    Returns:
        True when any id names the protected role, or when any resolved role
        grants the key. False otherwise, including on malformed input.
    """
    try:
        ids = _clean_role_ids(role_ids)
        if not ids:
            return False

        snapshot = _as_snapshot(roles)
        if holds_protected_role(ids, snapshot, protected_role_id):
            return True

        key = PermissionCatalog.parse(permission_key)
        if key is None:
            return False

        assigned = (snapshot.find(role_id) for role_id in ids)
        return fold_grants(
            (role.permissions for role in assigned if role is not None),
            key,
        )
    except Exception as e:
        # Deny by default on error
        logger.error(
            "Permission check failed, denying",
            permission=str(permission_key),
            error=str(e),
            exc_info=True,
        )
        return False


def granted_permissions(
    role_ids: Iterable[str] | None,
    roles: RoleSnapshot | Iterable[Role] | None,
    protected_role_id: str = PROTECTED_ROLE_ID,
) -> frozenset[PermissionKey]:
    """Get every catalog key the role ids grant."""
    snapshot = _as_snapshot(roles)
    # One-shot iterators are read once, not once per key
    ids = _clean_role_ids(role_ids)
    return frozenset(
        key for key in PermissionKey if can(ids, key, snapshot, protected_role_id)
    )


def visible_roles(
    viewer_role_ids: Iterable[str] | None,
    roles: RoleSnapshot | Iterable[Role] | None,
    protected_role_id: str = PROTECTED_ROLE_ID,
) -> list[Role]:
    """Filter a role listing for a viewer.

    Protected roles are only listed for viewers granted
    ``users.view.developer``.
    """
    snapshot = _as_snapshot(roles)
    reveal_protected = can(
        viewer_role_ids, PermissionKey.USERS_VIEW_DEVELOPER, snapshot, protected_role_id
    )
    return [
        role
        for role in snapshot
        if reveal_protected
        or not (role.is_protected or role.id == protected_role_id)
    ]


class RoleResolver:
    """Resolver bound to whatever snapshot a source currently holds.

    The source is read on every call, so a ``refresh()`` on the repository is
    observed immediately without rebuilding the resolver.
    """

    def __init__(self, source: SnapshotSource, protected_role_id: str = PROTECTED_ROLE_ID):
        """Initialize the resolver.

        Args:
            source: Holder of the current role snapshot.
            protected_role_id: Id of the role that bypasses every check.
        """
        self.source = source
        self.protected_role_id = protected_role_id

    @property
    def snapshot(self) -> RoleSnapshot:
        return self.source.snapshot

    def get_effective_role_ids(self, user: User | None) -> list[str]:
        return get_effective_role_ids(user)

    def can(self, role_ids: Iterable[str] | None, permission_key: PermissionKey | str) -> bool:
        return can(role_ids, permission_key, self.snapshot, self.protected_role_id)

    def can_user(self, user: User | None, permission_key: PermissionKey | str) -> bool:
        """Shortcut for ``can(get_effective_role_ids(user), key)``."""
        return self.can(get_effective_role_ids(user), permission_key)

    def granted_permissions(self, role_ids: Iterable[str] | None) -> frozenset[PermissionKey]:
        return granted_permissions(role_ids, self.snapshot, self.protected_role_id)

    def visible_roles(self, viewer_role_ids: Iterable[str] | None) -> list[Role]:
        return visible_roles(viewer_role_ids, self.snapshot, self.protected_role_id)
