"""Role administration service.

Creates, edits, deletes and toggles permissions on roles, enforcing the role
invariants before anything reaches the repository:

- the protected role cannot be renamed, recolored, re-permissioned or deleted;
- the default role cannot be deleted;
- positions are handed out monotonically on creation;
- flags and positions are never changed by an edit.

Every check reads the store directly rather than the snapshot. None of the
operations refresh the repository's snapshot; callers do that after a
successful write.
"""

import re
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from rolekeeper.core.logging import get_logger
from rolekeeper.domain.entities import (
    DEFAULT_ROLE_COLOR,
    MAX_ROLE_ID_LENGTH,
    PROTECTED_ROLE_ID,
    PermissionCatalog,
    PermissionKey,
    Role,
    RolePatch,
)
from rolekeeper.domain.exceptions import (
    ConflictError,
    ProtectedRoleError,
    DefaultRoleError,
    ValidationError,
)
from rolekeeper.domain.services.slug_generator import SlugGenerator
from rolekeeper.infrastructure.persistence.repositories import RoleRepository

logger = get_logger(__name__)

HEX_COLOR_PATTERN = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")
MAX_NAME_LENGTH = 100


class RoleAdministrationService:
    """Administration operations over a RoleRepository."""

    def __init__(self, repository: RoleRepository, protected_role_id: str = PROTECTED_ROLE_ID):
        """Initialize the service.

        Args:
            repository: Repository the service reads from and writes through.
            protected_role_id: Id of the built-in protected role; treated as
                protected even if its stored flag is missing.
        """
        self.repository = repository
        self.protected_role_id = protected_role_id

    def _is_protected(self, role: Role) -> bool:
        return role.is_protected or role.id == self.protected_role_id

    def _ensure_not_protected(self, role: Role, action: str) -> None:
        if self._is_protected(role):
            logger.info("Protected role mutation rejected", role_id=role.id, action=action)
            raise ProtectedRoleError(role.id)

    @staticmethod
    def _validate_name(name: Any) -> str:
        if not isinstance(name, str) or SlugGenerator.is_blank(name):
            raise ValidationError("Role name cannot be empty")
        name = name.strip()
        if len(name) > MAX_NAME_LENGTH:
            raise ValidationError(f"Role name must be at most {MAX_NAME_LENGTH} characters")
        return name

    @staticmethod
    def _validate_color(color: Any) -> str:
        if not isinstance(color, str) or not HEX_COLOR_PATTERN.match(color.strip()):
            raise ValidationError(f"Invalid role color '{color}', expected a hex color like '#3b82f6'")
        return color.strip()

    @staticmethod
    def _validate_permission_key(key: Any) -> PermissionKey:
        parsed = PermissionCatalog.parse(key)
        if parsed is None:
            raise ValidationError(f"Unknown permission key '{key}'")
        return parsed

    @classmethod
    def _validate_permissions(cls, permissions: Any) -> dict[str, bool]:
        if not isinstance(permissions, Mapping):
            raise ValidationError("Permissions must be a mapping of permission key to bool")
        validated: dict[str, bool] = {}
        for key, granted in permissions.items():
            parsed = cls._validate_permission_key(key)
            if not isinstance(granted, bool):
                raise ValidationError(f"Permission '{parsed.value}' must be true or false")
            validated[parsed.value] = granted
        return validated

    async def create_role(self, name: str, color: str | None = None) -> Role:
        """Create a new role at the bottom of the ordering.

        Args:
            name: Display name; the role id is derived from it.
            color: Hex display color; defaults to gray.

        Returns:
            The stored role.

        Raises:
            ValidationError: If the name is blank or the color malformed,
                or the derived id is too long.
            ConflictError: If the derived id exists or is reserved.
            StoreError: If the store fails.
        """
        name = self._validate_name(name)
        color = self._validate_color(color if color is not None else DEFAULT_ROLE_COLOR)
        role_id = SlugGenerator.generate(name)
        if len(role_id) > MAX_ROLE_ID_LENGTH:
            raise ValidationError(
                f"Role id derived from the name must be at most {MAX_ROLE_ID_LENGTH} characters"
            )

        if role_id == self.protected_role_id:
            logger.info("Role creation rejected: reserved id", role_id=role_id)
            raise ConflictError(f"Role id '{role_id}' is reserved", role_id=role_id)

        existing = await self.repository.fetch_all()
        if any(role.id == role_id for role in existing):
            logger.info("Role creation rejected: id already exists", role_id=role_id)
            raise ConflictError(f"Role '{role_id}' already exists", role_id=role_id)

        position = max((role.position for role in existing), default=0) + 1
        now = datetime.now(timezone.utc)
        role = Role(
            id=role_id,
            name=name,
            color=color,
            position=position,
            permissions={},
            is_default=False,
            is_protected=False,
            created_at=now,
            updated_at=now,
        )
        stored = await self.repository.put(role)

        logger.info("Role created", role_id=stored.id, position=stored.position)
        return stored

    async def update_role(self, role_id: str, patch: RolePatch) -> Role:
        """Apply a patch to a role.

        Only name, color and the whole permissions map can change.

        Raises:
            RoleNotFoundError: If the role does not exist.
            ProtectedRoleError: If the role is protected.
            ValidationError: If a patched field is invalid.
            StoreError: If the store fails.
        """
        role = await self.repository.fetch(role_id)
        self._ensure_not_protected(role, "update")

        changes: dict[str, Any] = {}
        if patch.name is not None:
            changes["name"] = self._validate_name(patch.name)
        if patch.color is not None:
            changes["color"] = self._validate_color(patch.color)
        if patch.permissions is not None:
            changes["permissions"] = self._validate_permissions(patch.permissions)

        if not changes:
            return role

        updated = Role(
            id=role.id,
            name=changes.get("name", role.name),
            color=changes.get("color", role.color),
            position=role.position,
            permissions=changes.get("permissions", dict(role.permissions)),
            is_default=role.is_default,
            is_protected=role.is_protected,
            created_at=role.created_at,
            updated_at=role.updated_at,
            revision=role.revision,
        )
        stored = await self.repository.put(updated)

        logger.info("Role updated", role_id=stored.id, fields=sorted(changes))
        return stored

    async def delete_role(self, role_id: str) -> None:
        """Delete a role.

        Users still holding the role keep the dangling id until user
        management reassigns them; dangling ids resolve to no access.

        Raises:
            RoleNotFoundError: If the role does not exist.
            ProtectedRoleError: If the role is protected.
            DefaultRoleError: If the role is the default role.
            StoreError: If the store fails.
        """
        role = await self.repository.fetch(role_id)
        self._ensure_not_protected(role, "delete")
        if role.is_default:
            logger.info("Default role deletion rejected", role_id=role_id)
            raise DefaultRoleError(role_id)

        await self.repository.delete(role_id)
        logger.info("Role deleted", role_id=role_id)

    def _with_permission(self, role: Role, key: PermissionKey, granted: bool) -> Role:
        permissions = dict(role.permissions)
        permissions[key.value] = granted
        return Role(
            id=role.id,
            name=role.name,
            color=role.color,
            position=role.position,
            permissions=permissions,
            is_default=role.is_default,
            is_protected=role.is_protected,
            created_at=role.created_at,
            updated_at=role.updated_at,
            revision=role.revision,
        )

    async def set_permission(self, role_id: str, permission_key: PermissionKey | str, granted: bool) -> Role:
        """Grant or revoke one permission on a role.

        Reads the role's full current permission map, sets the one key and
        writes the whole document back. Two administrators toggling different
        keys on the same role at the same time can therefore lose one of the
        changes (last writer wins). Use ``set_permission_checked`` to detect
        that instead.

        Raises:
            RoleNotFoundError: If the role does not exist.
            ProtectedRoleError: If the role is protected.
            ValidationError: If the key is not in the catalog.
            StoreError: If the store fails.
        """
        key = self._validate_permission_key(permission_key)
        role = await self.repository.fetch(role_id)
        self._ensure_not_protected(role, "set_permission")

        stored = await self.repository.put(self._with_permission(role, key, bool(granted)))

        logger.info("Role permission set", role_id=role_id, permission=key.value, granted=bool(granted))
        return stored

    async def set_permission_checked(
        self,
        role_id: str,
        permission_key: PermissionKey | str,
        granted: bool,
        expected_revision: int | None = None,
    ) -> Role:
        """Grant or revoke one permission, refusing to overwrite concurrent edits.

        Args:
            role_id: Role to change.
            permission_key: Catalog key to set.
            granted: New value.
            expected_revision: Revision the caller last saw. Defaults to the
                revision read by this call.

        Raises:
            ConcurrentModificationError: If the role changed since it was read.
            RoleNotFoundError: If the role does not exist.
            ProtectedRoleError: If the role is protected.
            ValidationError: If the key is not in the catalog.
            StoreError: If the store fails.
        """
        key = self._validate_permission_key(permission_key)
        role = await self.repository.fetch(role_id)
        self._ensure_not_protected(role, "set_permission")

        revision = role.revision if expected_revision is None else expected_revision
        stored = await self.repository.compare_and_put(
            self._with_permission(role, key, bool(granted)), revision
        )

        logger.info(
            "Role permission set (checked)",
            role_id=role_id,
            permission=key.value,
            granted=bool(granted),
            revision=stored.revision,
        )
        return stored
