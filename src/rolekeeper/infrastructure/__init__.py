"""Infrastructure layer - External dependencies and implementations.

This layer contains all external dependencies including:
- Database adapters (SQLAlchemy)
- API routes (FastAPI)

The infrastructure layer implements the persistence and transport the
domain layer relies on.
"""

from rolekeeper.infrastructure.persistence.database import (
    Base,
    DatabaseManager,
    close_database,
    get_db_manager,
    init_database,
    seed_builtin_roles,
)

__all__ = [
    "Base",
    "DatabaseManager",
    "get_db_manager",
    "init_database",
    "close_database",
    "seed_builtin_roles",
]
