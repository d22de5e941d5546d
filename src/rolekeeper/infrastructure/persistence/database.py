"""Database abstraction layer using SQLAlchemy 2.0 async.

This module provides the database session management and engine configuration
for SQLAlchemy with async support. It supports both SQLite (aiosqlite) and
PostgreSQL (asyncpg) drivers.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncGenerator

from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from rolekeeper.core.config import Settings, get_settings
from rolekeeper.core.logging import get_logger

logger = get_logger(__name__)

ROLES_SETTINGS_KEY = "roles"


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class DatabaseManager:
    """Database connection and session manager.

    This class manages the async database engine and session factory.
    It provides context managers for database sessions and handles
    connection pooling.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize the database manager.

        Args:
            settings: Settings to use; loaded from the environment if omitted.
        """
        self.settings = settings or get_settings()
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine:
        """Get or create the database engine.

        Returns:
            AsyncEngine: SQLAlchemy async engine instance.
        """
        if self._engine is None:
            if self.settings.database_url.startswith("sqlite"):
                self._engine = create_async_engine(
                    self.settings.database_url,
                    echo=self.settings.db_echo,
                    connect_args={"check_same_thread": False},
                )
            else:
                self._engine = create_async_engine(
                    self.settings.database_url,
                    echo=self.settings.db_echo,
                    pool_size=self.settings.db_pool_size,
                    max_overflow=self.settings.db_max_overflow,
                    pool_timeout=self.settings.db_pool_timeout,
                    pool_recycle=self.settings.db_pool_recycle,
                )
            logger.info(
                "Database engine created",
                database_url=self._engine.url.render_as_string(hide_password=True),
            )
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        """Get or create the session factory.

        Returns:
            async_sessionmaker: SQLAlchemy async session factory.
        """
        if self._session_factory is None:
            self._session_factory = async_sessionmaker(
                bind=self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )
            logger.debug("Database session factory created")
        return self._session_factory

    async def create_tables(self) -> None:
        """Create all database tables.

        In production, use migrations instead.
        """
        # Register every model with Base.metadata
        from rolekeeper.infrastructure.persistence import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
            logger.info("Database tables created")

    async def disconnect(self) -> None:
        """Close the database engine and all connections."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Database engine disposed")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Provide a transactional scope for database operations.

        Yields:
            AsyncSession: SQLAlchemy async session.

        Example:
            async with db.session() as session:
                result = await session.execute(select(RoleModel))
                roles = result.scalars().all()
        """
        async with self.session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    async def check_connection(self) -> bool:
        """Check if database connection is working.

        Returns:
            bool: True if connection is successful, False otherwise.
        """
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
                logger.debug("Database connection check successful")
                return True
        except Exception as e:
            logger.error("Database connection check failed", error=str(e))
            return False


# Global database manager instance
_db_manager: DatabaseManager | None = None


def get_db_manager() -> DatabaseManager:
    """Get the global database manager instance.

    Returns:
        DatabaseManager: Global database manager instance.
    """
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
    return _db_manager


async def seed_builtin_roles(session: AsyncSession, settings: Settings | None = None) -> list[str]:
    """Insert the built-in roles and the roles settings document if missing.

    Existing rows are left untouched, so administrators' edits to Staff
    survive restarts.

    Args:
        session: Database session; committed by this function.
        settings: Settings providing the built-in ids and roles-per-user cap.

    Returns:
        Ids of the roles that were inserted.
    """
    from rolekeeper.domain.entities import DEFAULT_STAFF_PERMISSIONS
    from rolekeeper.infrastructure.persistence.models import RoleModel, SystemSettingModel

    settings = settings or get_settings()
    now = datetime.now(timezone.utc)

    builtin_roles = [
        {
            "id": settings.protected_role_id,
            "name": "Developer",
            "color": "#ef4444",
            "position": 0,
            "permissions": {},  # bypasses every check
            "is_default": False,
            "is_protected": True,
        },
        {
            "id": settings.default_role_id,
            "name": "Staff",
            "color": "#3b82f6",
            "position": 100,
            "permissions": dict(DEFAULT_STAFF_PERMISSIONS),
            "is_default": True,
            "is_protected": False,
        },
    ]

    inserted: list[str] = []
    for role_data in builtin_roles:
        existing = await session.get(RoleModel, role_data["id"])
        if existing is None:
            session.add(RoleModel(**role_data, created_at=now, updated_at=now, revision=1))
            inserted.append(role_data["id"])
            logger.info("Seeded built-in role", role_id=role_data["id"])

    result = await session.execute(
        select(SystemSettingModel).where(SystemSettingModel.key == ROLES_SETTINGS_KEY)
    )
    if result.scalar_one_or_none() is None:
        session.add(
            SystemSettingModel(
                key=ROLES_SETTINGS_KEY,
                value={"maxRolesPerUser": settings.max_roles_per_user},
                updated_at=now,
            )
        )
        logger.info("Seeded roles settings", max_roles_per_user=settings.max_roles_per_user)

    await session.commit()
    return inserted


async def init_database(db: DatabaseManager | None = None) -> None:
    """Initialize the database.

    Creates tables when running in development (use migrations in
    production) and seeds the built-in roles when enabled.
    """
    db = db or get_db_manager()
    settings = db.settings

    # Create database directory if using SQLite
    if settings.database_url.startswith("sqlite") and ":memory:" not in settings.database_url:
        db_path = settings.database_url.split(":///")[-1]
        db_dir = Path(db_path).parent
        db_dir.mkdir(parents=True, exist_ok=True)
        logger.info("Database directory created", path=str(db_dir))

    if not await db.check_connection():
        logger.error("Database connection failed")
        raise RuntimeError("Failed to connect to database")

    if not settings.is_production:
        logger.info("Creating database tables", environment=settings.environment)
        await db.create_tables()
    else:
        logger.info("Production mode: Skipping auto-create, use migrations")

    if settings.seed_builtin_roles:
        async with db.session() as session:
            await seed_builtin_roles(session, settings)


async def close_database() -> None:
    """Close the global database connection."""
    global _db_manager
    if _db_manager is not None:
        await _db_manager.disconnect()
        _db_manager = None
