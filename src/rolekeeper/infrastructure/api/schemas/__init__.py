"""API schemas for request/response validation."""

from rolekeeper.infrastructure.api.schemas.role_schemas import (
    CatalogResponse,
    CreateRoleRequest,
    MyPermissionsResponse,
    PermissionCategoryResponse,
    PermissionEntryResponse,
    RefreshResponse,
    RoleListItem,
    RoleListResponse,
    RoleResponse,
    SetPermissionRequest,
    UpdateRoleRequest,
)

__all__ = [
    "CatalogResponse",
    "CreateRoleRequest",
    "MyPermissionsResponse",
    "PermissionCategoryResponse",
    "PermissionEntryResponse",
    "RefreshResponse",
    "RoleListItem",
    "RoleListResponse",
    "RoleResponse",
    "SetPermissionRequest",
    "UpdateRoleRequest",
]
