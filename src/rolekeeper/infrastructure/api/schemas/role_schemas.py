"""Role API schemas for request/response validation."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from rolekeeper.domain.entities import PermissionCatalog, PermissionCategory, Role


class CreateRoleRequest(BaseModel):
    """Request schema for creating a role.

    Attributes:
        name: Display name; the role id is derived from it.
        color: Optional hex display color.
    """

    name: str
    color: str | None = None

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        """Validate that name is not empty."""
        if not v or not v.strip():
            raise ValueError("Role name cannot be empty")
        return v.strip()


class UpdateRoleRequest(BaseModel):
    """Request schema for updating a role.

    Every field is optional; omitted fields are left unchanged.

    Attributes:
        name: New display name.
        color: New hex display color.
        permissions: Replacement permission map.
    """

    name: str | None = None
    color: str | None = None
    permissions: dict[str, bool] | None = None


class SetPermissionRequest(BaseModel):
    """Request schema for granting or revoking one permission.

    Attributes:
        granted: New value for the key.
        expected_revision: Revision the caller last saw. When given, the write
            is rejected with 409 if the role changed in the meantime.
    """

    granted: bool
    expected_revision: int | None = Field(default=None, ge=0)


class RoleResponse(BaseModel):
    """Response schema for a role.

    ``permissions`` is the sparse stored map; ``matrix`` has every catalog
    key.
    """

    id: str
    name: str
    color: str
    position: int
    permissions: dict[str, bool]
    matrix: dict[str, bool]
    is_default: bool
    is_protected: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None
    revision: int

    @classmethod
    def from_role(cls, role: Role) -> "RoleResponse":
        return cls(
            id=role.id,
            name=role.name,
            color=role.color,
            position=role.position,
            permissions={k: v for k, v in role.permissions.items() if isinstance(v, bool)},
            matrix={key.value: granted for key, granted in PermissionCatalog.expand(role.permissions).items()},
            is_default=role.is_default,
            is_protected=role.is_protected,
            created_at=role.created_at,
            updated_at=role.updated_at,
            revision=role.revision,
        )


class RoleListItem(BaseModel):
    """List item schema for a role."""

    id: str
    name: str
    color: str
    position: int
    is_default: bool
    is_protected: bool
    granted_count: int

    @classmethod
    def from_role(cls, role: Role) -> "RoleListItem":
        return cls(
            id=role.id,
            name=role.name,
            color=role.color,
            position=role.position,
            is_default=role.is_default,
            is_protected=role.is_protected,
            granted_count=sum(PermissionCatalog.expand(role.permissions).values()),
        )


class RoleListResponse(BaseModel):
    """Response schema for listing roles.

    Attributes:
        items: Roles visible to the caller, ordered by position.
        total: Number of items.
        max_roles_per_user: Roles-per-user cap enforced by user management.
    """

    items: list[RoleListItem]
    total: int
    max_roles_per_user: int


class PermissionEntryResponse(BaseModel):
    """One catalog key with its label."""

    key: str
    label: str


class PermissionCategoryResponse(BaseModel):
    """One catalog category."""

    name: str
    permissions: list[PermissionEntryResponse]

    @classmethod
    def from_category(cls, category: PermissionCategory) -> "PermissionCategoryResponse":
        return cls(
            name=category.name,
            permissions=[
                PermissionEntryResponse(key=entry.key.value, label=entry.label)
                for entry in category.permissions
            ],
        )


class CatalogResponse(BaseModel):
    """Response schema for the permission catalog."""

    version: int
    categories: list[PermissionCategoryResponse]


class MyPermissionsResponse(BaseModel):
    """Response schema for the caller's own effective access.

    Attributes:
        user_id: Caller id.
        role_ids: Role ids authorization runs with (the previewed role while
            a preview is active).
        permissions: Granted catalog keys, sorted.
        preview_role_id: Previewed role, if a preview was requested and
            accepted.
    """

    user_id: str
    role_ids: list[str]
    permissions: list[str]
    preview_role_id: str | None = None


class RefreshResponse(BaseModel):
    """Response schema for a snapshot refresh."""

    count: int
    loaded_at: datetime | None = None
