"""FastAPI dependencies for identity, repositories and authorization.

The identity collaborator (an authentication middleware owned by the host
application) stores the caller on ``request.state.user``. Nothing here
validates credentials.
"""

from typing import Annotated, Callable

from fastapi import Depends, HTTPException, Request, status

from rolekeeper.core.config import get_settings
from rolekeeper.core.logging import get_logger
from rolekeeper.domain.entities import PermissionKey, User
from rolekeeper.domain.services import RoleAdministrationService, RoleResolver
from rolekeeper.infrastructure.persistence.repositories import (
    RoleRepository,
    RoleSettingsRepository,
)

logger = get_logger(__name__)


async def get_current_user(request: Request) -> User:
    """Get the caller placed on the request by the identity collaborator.

    Raises:
        HTTPException: 401 if no identity was attached to the request.
    """
    user = getattr(request.state, "user", None)
    if not isinstance(user, User):
        logger.info("Authentication failed: no user on request", path=str(request.url.path))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return user


# Type alias for dependency injection
AuthenticatedUser = Annotated[User, Depends(get_current_user)]


def get_role_repository(request: Request) -> RoleRepository:
    """Get the application-wide role repository holding the snapshot."""
    return request.app.state.role_repository


def get_role_settings_repository(request: Request) -> RoleSettingsRepository:
    """Get the application-wide roles settings repository."""
    return request.app.state.role_settings_repository


def get_role_resolver(
    repository: Annotated[RoleRepository, Depends(get_role_repository)],
) -> RoleResolver:
    """Get a resolver bound to the repository's current snapshot."""
    return RoleResolver(repository, protected_role_id=get_settings().protected_role_id)


def get_admin_service(
    repository: Annotated[RoleRepository, Depends(get_role_repository)],
) -> RoleAdministrationService:
    """Get the role administration service."""
    return RoleAdministrationService(repository, protected_role_id=get_settings().protected_role_id)


Repository = Annotated[RoleRepository, Depends(get_role_repository)]
SettingsRepository = Annotated[RoleSettingsRepository, Depends(get_role_settings_repository)]
Resolver = Annotated[RoleResolver, Depends(get_role_resolver)]
AdminService = Annotated[RoleAdministrationService, Depends(get_admin_service)]


def require_permission(permission_key: PermissionKey) -> Callable:
    """Build a dependency that admits only callers granted ``permission_key``.

    Args:
        permission_key: Catalog key the endpoint is gated on.

    Returns:
        Dependency returning the authenticated user.
    """

    async def dependency(user: AuthenticatedUser, resolver: Resolver) -> User:
        if not resolver.can_user(user, permission_key):
            logger.info(
                "Authorization denied",
                user_id=user.id,
                permission=permission_key.value,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Forbidden",
            )
        return user

    return dependency


RoleViewer = Annotated[User, Depends(require_permission(PermissionKey.ROLES_VIEW))]
RoleManager = Annotated[User, Depends(require_permission(PermissionKey.ROLES_MANAGE))]
