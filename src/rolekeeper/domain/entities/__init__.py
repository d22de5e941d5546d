"""Domain entities for rolekeeper.

Entities are pure Python dataclasses that represent core business concepts.
They have no dependencies on infrastructure or external frameworks.
"""

from rolekeeper.domain.entities.permission import (
    CATALOG_VERSION,
    DEFAULT_STAFF_PERMISSIONS,
    PermissionCatalog,
    PermissionCategory,
    PermissionEntry,
    PermissionKey,
)
from rolekeeper.domain.entities.role import (
    DEFAULT_ROLE_COLOR,
    DEFAULT_ROLE_ID,
    FALLBACK_POSITION,
    MAX_ROLE_ID_LENGTH,
    PROTECTED_ROLE_ID,
    Role,
    RoleSnapshot,
)
from rolekeeper.domain.entities.role_patch import RolePatch
from rolekeeper.domain.entities.user import User

__all__ = [
    "CATALOG_VERSION",
    "DEFAULT_ROLE_COLOR",
    "DEFAULT_ROLE_ID",
    "DEFAULT_STAFF_PERMISSIONS",
    "FALLBACK_POSITION",
    "MAX_ROLE_ID_LENGTH",
    "PROTECTED_ROLE_ID",
    "PermissionCatalog",
    "PermissionCategory",
    "PermissionEntry",
    "PermissionKey",
    "Role",
    "RolePatch",
    "RoleSnapshot",
    "User",
]
