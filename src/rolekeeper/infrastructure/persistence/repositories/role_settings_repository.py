"""Repository for the roles settings document."""

from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rolekeeper.core.config import Settings, get_settings
from rolekeeper.core.logging import get_logger
from rolekeeper.domain.exceptions import StoreError, ValidationError
from rolekeeper.infrastructure.persistence.database import ROLES_SETTINGS_KEY
from rolekeeper.infrastructure.persistence.models import SystemSettingModel

logger = get_logger(__name__)

MAX_ROLES_FIELD = "maxRolesPerUser"


class RoleSettingsRepository:
    """Reads and writes ``system_settings['roles']``.

    The roles-per-user cap is owned by user management; this core only reads
    it to report it to administration surfaces.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Settings | None = None,
    ) -> None:
        """Initialize the repository.

        Args:
            session_factory: Factory producing SQLAlchemy async sessions.
            settings: Provides the fallback cap when the document is unusable.
        """
        self.session_factory = session_factory
        self.settings = settings or get_settings()

    async def get_max_roles_per_user(self) -> int:
        """Get the configured roles-per-user cap.

        Falls back to ``Settings.max_roles_per_user`` when the document is
        missing, malformed or unreadable.
        """
        fallback = self.settings.max_roles_per_user
        try:
            async with self.session_factory() as session:
                model = await session.get(SystemSettingModel, ROLES_SETTINGS_KEY)
                value = dict(model.value) if model is not None and isinstance(model.value, dict) else None
        except SQLAlchemyError as e:
            logger.warning("Failed to load roles settings, using fallback", error=str(e), fallback=fallback)
            return fallback

        if value is None:
            logger.debug("Roles settings document missing, using fallback", fallback=fallback)
            return fallback

        max_roles = value.get(MAX_ROLES_FIELD)
        if isinstance(max_roles, bool) or not isinstance(max_roles, int) or max_roles < 1:
            logger.warning("Malformed roles settings, using fallback", value=max_roles, fallback=fallback)
            return fallback
        return max_roles

    async def set_max_roles_per_user(self, max_roles: int) -> int:
        """Write the roles-per-user cap.

        Raises:
            ValidationError: If the cap is below 1.
            StoreError: If the write fails.
        """
        if isinstance(max_roles, bool) or not isinstance(max_roles, int) or max_roles < 1:
            raise ValidationError("maxRolesPerUser must be a positive integer")

        now = datetime.now(timezone.utc)
        try:
            async with self.session_factory() as session:
                model = await session.get(SystemSettingModel, ROLES_SETTINGS_KEY)
                if model is None:
                    model = SystemSettingModel(key=ROLES_SETTINGS_KEY, value={})
                    session.add(model)
                model.value = {**(model.value or {}), MAX_ROLES_FIELD: max_roles}
                model.updated_at = now
                await session.commit()
        except SQLAlchemyError as e:
            logger.error("Failed to write roles settings", error=str(e))
            raise StoreError(f"Failed to write roles settings: {e}") from e

        logger.info("Roles settings updated", max_roles_per_user=max_roles)
        return max_roles
