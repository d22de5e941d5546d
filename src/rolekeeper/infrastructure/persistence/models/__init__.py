"""SQLAlchemy models for rolekeeper tables.

All models inherit from the Base class defined in database.py.
"""

from rolekeeper.infrastructure.persistence.models.role import RoleModel
from rolekeeper.infrastructure.persistence.models.system_setting import SystemSettingModel

__all__ = [
    "RoleModel",
    "SystemSettingModel",
]
