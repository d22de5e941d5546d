"""Repositories for database operations."""

from rolekeeper.infrastructure.persistence.repositories.role_repository import RoleRepository
from rolekeeper.infrastructure.persistence.repositories.role_settings_repository import (
    RoleSettingsRepository,
)

__all__ = [
    "RoleRepository",
    "RoleSettingsRepository",
]
