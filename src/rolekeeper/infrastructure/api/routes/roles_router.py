"""Roles API routes.

Provides endpoints for role management and permission configuration.
Domain errors raised by the administration service are translated to HTTP
status codes by the application's exception handlers.
"""

from fastapi import APIRouter, Query, status

from rolekeeper.core.logging import get_logger
from rolekeeper.domain.entities import PermissionCatalog, RolePatch
from rolekeeper.domain.exceptions import RoleNotFoundError, StoreError
from rolekeeper.domain.services import RolePreview, validate_preview
from rolekeeper.infrastructure.api.dependencies import (
    AdminService,
    AuthenticatedUser,
    Repository,
    Resolver,
    RoleManager,
    RoleViewer,
    SettingsRepository,
)
from rolekeeper.infrastructure.api.schemas import (
    CatalogResponse,
    CreateRoleRequest,
    MyPermissionsResponse,
    PermissionCategoryResponse,
    RefreshResponse,
    RoleListItem,
    RoleListResponse,
    RoleResponse,
    SetPermissionRequest,
    UpdateRoleRequest,
)
from rolekeeper.infrastructure.persistence.repositories import RoleRepository

logger = get_logger(__name__)

router = APIRouter()


async def _refresh_after_write(repository: RoleRepository, role_id: str) -> None:
    """Reload the snapshot after a committed write.

    The write already succeeded, so a failed reload is logged and the stale
    snapshot is kept until the next refresh.
    """
    try:
        await repository.refresh()
    except StoreError as e:
        logger.error("Snapshot refresh after write failed", role_id=role_id, error=str(e))


@router.get(
    "",
    status_code=status.HTTP_200_OK,
    response_model=RoleListResponse,
    responses={
        403: {"description": "roles.view required"},
    },
)
async def list_roles(
    current_user: RoleViewer,
    resolver: Resolver,
    settings_repository: SettingsRepository,
) -> RoleListResponse:
    """List the roles visible to the caller, ordered by position.

    Protected roles are only listed for callers granted
    ``users.view.developer``.
    """
    roles = resolver.visible_roles(resolver.get_effective_role_ids(current_user))
    items = [RoleListItem.from_role(role) for role in roles]
    max_roles = await settings_repository.get_max_roles_per_user()

    logger.debug("Roles listed", count=len(items), requested_by=current_user.id)

    return RoleListResponse(items=items, total=len(items), max_roles_per_user=max_roles)


@router.get(
    "/catalog",
    status_code=status.HTTP_200_OK,
    response_model=CatalogResponse,
)
async def get_catalog(current_user: RoleViewer) -> CatalogResponse:
    """Get the permission catalog grouped by category."""
    return CatalogResponse(
        version=PermissionCatalog.version,
        categories=[
            PermissionCategoryResponse.from_category(category)
            for category in PermissionCatalog.categories()
        ],
    )


@router.get(
    "/me",
    status_code=status.HTTP_200_OK,
    response_model=MyPermissionsResponse,
)
async def get_my_permissions(
    current_user: AuthenticatedUser,
    resolver: Resolver,
    preview: str | None = Query(default=None, description="Role id to preview as"),
) -> MyPermissionsResponse:
    """Get the caller's effective role ids and granted permissions.

    With ``preview``, the answer is computed as the previewed role would see
    it, provided the preview is allowed for the caller; otherwise the preview
    is ignored.
    """
    actual_role_ids = resolver.get_effective_role_ids(current_user)
    requested = RolePreview().start(preview) if preview else RolePreview()
    checked = validate_preview(requested, actual_role_ids, resolver.snapshot, resolver.protected_role_id)
    role_ids = [checked.preview_role_id] if checked.active else actual_role_ids

    return MyPermissionsResponse(
        user_id=current_user.id,
        role_ids=role_ids,
        permissions=sorted(key.value for key in resolver.granted_permissions(role_ids)),
        preview_role_id=checked.preview_role_id if checked.active else None,
    )


@router.post(
    "/refresh",
    status_code=status.HTTP_200_OK,
    response_model=RefreshResponse,
    responses={
        503: {"description": "Role store unavailable"},
    },
)
async def refresh_roles(current_user: RoleViewer, repository: Repository) -> RefreshResponse:
    """Re-read every role into the snapshot."""
    snapshot = await repository.refresh()
    return RefreshResponse(count=len(snapshot), loaded_at=snapshot.loaded_at)


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=RoleResponse,
    responses={
        400: {"description": "Validation error"},
        403: {"description": "roles.manage required"},
        409: {"description": "Role id already exists or is reserved"},
    },
)
async def create_role(
    role_request: CreateRoleRequest,
    current_user: RoleManager,
    service: AdminService,
    repository: Repository,
) -> RoleResponse:
    """Create a new role at the bottom of the ordering."""
    role = await service.create_role(role_request.name, role_request.color)
    await _refresh_after_write(repository, role.id)

    logger.info("Role created via API", role_id=role.id, created_by=current_user.id)
    return RoleResponse.from_role(role)


@router.get(
    "/{role_id}",
    status_code=status.HTTP_200_OK,
    response_model=RoleResponse,
    responses={
        403: {"description": "roles.view required"},
        404: {"description": "Role not found"},
    },
)
async def get_role(role_id: str, current_user: RoleViewer, resolver: Resolver) -> RoleResponse:
    """Get a role from the snapshot, with its full permission matrix.

    Roles hidden from the caller's listing are reported as not found.
    """
    visible = resolver.visible_roles(resolver.get_effective_role_ids(current_user))
    role = next((role for role in visible if role.id == role_id), None)
    if role is None:
        raise RoleNotFoundError(role_id)
    return RoleResponse.from_role(role)


@router.patch(
    "/{role_id}",
    status_code=status.HTTP_200_OK,
    response_model=RoleResponse,
    responses={
        400: {"description": "Validation error"},
        403: {"description": "roles.manage required, or role is protected"},
        404: {"description": "Role not found"},
    },
)
async def update_role(
    role_id: str,
    role_request: UpdateRoleRequest,
    current_user: RoleManager,
    service: AdminService,
    repository: Repository,
) -> RoleResponse:
    """Update a role's name, color or permission map."""
    patch = RolePatch(
        name=role_request.name,
        color=role_request.color,
        permissions=role_request.permissions,
    )
    role = await service.update_role(role_id, patch)
    await _refresh_after_write(repository, role_id)

    logger.info("Role updated via API", role_id=role_id, updated_by=current_user.id)
    return RoleResponse.from_role(role)


@router.delete(
    "/{role_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={
        403: {"description": "roles.manage required, or role is protected"},
        404: {"description": "Role not found"},
        409: {"description": "Role is the default role"},
    },
)
async def delete_role(
    role_id: str,
    current_user: RoleManager,
    service: AdminService,
    repository: Repository,
) -> None:
    """Delete a role."""
    await service.delete_role(role_id)
    await _refresh_after_write(repository, role_id)

    logger.info("Role deleted via API", role_id=role_id, deleted_by=current_user.id)


@router.put(
    "/{role_id}/permissions/{permission_key}",
    status_code=status.HTTP_200_OK,
    response_model=RoleResponse,
    responses={
        400: {"description": "Unknown permission key"},
        403: {"description": "roles.manage required, or role is protected"},
        404: {"description": "Role not found"},
        409: {"description": "Role changed since expected_revision"},
    },
)
async def set_permission(
    role_id: str,
    permission_key: str,
    permission_request: SetPermissionRequest,
    current_user: RoleManager,
    service: AdminService,
    repository: Repository,
) -> RoleResponse:
    """Grant or revoke one permission on a role."""
    if permission_request.expected_revision is None:
        role = await service.set_permission(role_id, permission_key, permission_request.granted)
    else:
        role = await service.set_permission_checked(
            role_id,
            permission_key,
            permission_request.granted,
            expected_revision=permission_request.expected_revision,
        )
    await _refresh_after_write(repository, role_id)

    logger.info(
        "Role permission set via API",
        role_id=role_id,
        permission=permission_key,
        granted=permission_request.granted,
        updated_by=current_user.id,
    )
    return RoleResponse.from_role(role)
