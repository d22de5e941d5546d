"""Domain services for rolekeeper.

Services contain business logic that doesn't naturally fit within a single entity.
Resolution and preview are pure functions over a role snapshot; administration
writes through the role repository.
"""

from rolekeeper.domain.services.role_administration_service import RoleAdministrationService
from rolekeeper.domain.services.role_preview import (
    RolePreview,
    allowed_preview_roles,
    effective_role_ids_with_preview,
    top_position,
    validate_preview,
)
from rolekeeper.domain.services.role_resolver import (
    RoleResolver,
    can,
    fold_grants,
    get_effective_role_ids,
    granted_permissions,
    holds_protected_role,
    visible_roles,
)
from rolekeeper.domain.services.slug_generator import SlugGenerator

__all__ = [
    "RoleAdministrationService",
    "RolePreview",
    "RoleResolver",
    "SlugGenerator",
    "allowed_preview_roles",
    "can",
    "effective_role_ids_with_preview",
    "fold_grants",
    "get_effective_role_ids",
    "granted_permissions",
    "holds_protected_role",
    "top_position",
    "validate_preview",
    "visible_roles",
]
