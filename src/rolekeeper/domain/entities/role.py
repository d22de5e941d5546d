"""Role entity and the immutable role snapshot.

A role is a named, colored, ordered bundle of granted permissions. Roles are
stored one document per role, keyed by a slug id.
"""

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from rolekeeper.domain.entities.permission import PermissionCatalog

PROTECTED_ROLE_ID = "developer"
DEFAULT_ROLE_ID = "staff"
DEFAULT_ROLE_COLOR = "#6b7280"
MAX_ROLE_ID_LENGTH = 64

# Position given to stored roles that carry no usable position.
FALLBACK_POSITION = 999


@dataclass
class Role:
    """Role entity.

    Attributes:
        id: Stable slug identifier, derived from the name at creation.
        name: Display name.
        color: Display color as a hex string (e.g. '#3b82f6').
        position: Ordering hint; lower positions rank higher.
        permissions: Sparse map of permission key to granted flag.
        is_default: Role implicitly held by users without an assignment.
        is_protected: Immutable role that bypasses every permission check.
        created_at: When the role was created.
        updated_at: When the role document was last written.
        revision: Store-managed write counter, used only by checked writes.
    """

    id: str
    name: str
    color: str = DEFAULT_ROLE_COLOR
    position: int = 0
    permissions: dict[str, bool] = field(default_factory=dict)
    is_default: bool = False
    is_protected: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None
    revision: int = 0

    def __post_init__(self) -> None:
        """Validate role data after initialization."""
        if not self.id:
            raise ValueError("Role id is required")
        if not self.name:
            raise ValueError("Role name is required")

    def grants(self, key: Any) -> bool:
        """Check whether this role's own map grants a key.

        Unknown keys and any value other than ``True`` read as not granted.
        The protected bypass is not applied here.
        """
        parsed = PermissionCatalog.parse(key)
        if parsed is None:
            return False
        return self.permissions.get(parsed.value) is True


@dataclass(frozen=True)
class RoleSnapshot:
    """Immutable, position-ordered view of every role at one point in time.

    Attributes:
        roles: Roles ordered by position, then id.
        loaded_at: When the snapshot was read from the store, if it was.
    """

    roles: tuple[Role, ...] = ()
    loaded_at: datetime | None = None
    _by_id: Mapping[str, Role] = field(default_factory=dict, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_by_id", {role.id: role for role in self.roles})

    @classmethod
    def from_roles(cls, roles: Iterable[Role], loaded_at: datetime | None = None) -> "RoleSnapshot":
        """Build a snapshot, ordering the roles by position."""
        ordered = sorted(roles, key=lambda role: (role.position, role.id))
        return cls(roles=tuple(ordered), loaded_at=loaded_at)

    def find(self, role_id: Any) -> Role | None:
        """Look up a role by id; anything that isn't a known id gives None."""
        if not isinstance(role_id, str):
            return None
        return self._by_id.get(role_id)

    def __contains__(self, role_id: object) -> bool:
        return isinstance(role_id, str) and role_id in self._by_id

    def __iter__(self) -> Iterator[Role]:
        return iter(self.roles)

    def __len__(self) -> int:
        return len(self.roles)
