"""Role repository.

Persistence boundary for role documents plus an explicit, caller-refreshed
snapshot cache. ``get()`` and ``list()`` only ever serve the snapshot taken by
the last successful ``refresh()``; ``fetch()`` and ``fetch_all()`` go to the
store.

Writes are last-writer-wins per document. ``compare_and_put`` is the only
write that checks for concurrent changes.
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rolekeeper.core.logging import get_logger
from rolekeeper.domain.entities import (
    DEFAULT_ROLE_COLOR,
    FALLBACK_POSITION,
    Role,
    RoleSnapshot,
)
from rolekeeper.domain.exceptions import (
    ConcurrentModificationError,
    RoleNotFoundError,
    StoreError,
)
from rolekeeper.infrastructure.persistence.models import RoleModel

logger = get_logger(__name__)


def _to_entity(model: RoleModel) -> Role:
    """Convert a stored row into a Role, tolerating malformed columns."""
    permissions: Any = model.permissions
    position: Any = model.position
    return Role(
        id=model.id,
        name=model.name or model.id,
        color=model.color or DEFAULT_ROLE_COLOR,
        position=position if isinstance(position, int) and not isinstance(position, bool) else FALLBACK_POSITION,
        permissions={str(k): v for k, v in permissions.items()} if isinstance(permissions, dict) else {},
        is_default=model.is_default is True,
        is_protected=model.is_protected is True,
        created_at=model.created_at,
        updated_at=model.updated_at,
        revision=model.revision or 0,
    )


def _document_values(role: Role) -> dict[str, Any]:
    return {
        "name": role.name,
        "color": role.color,
        "position": role.position,
        "permissions": dict(role.permissions),
        "is_default": role.is_default,
        "is_protected": role.is_protected,
    }


class RoleRepository:
    """Repository for role documents with an in-memory snapshot.

    The repository outlives individual sessions: every store call opens its
    own session from the factory and commits before returning.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Initialize the repository.

        Args:
            session_factory: Factory producing SQLAlchemy async sessions.
        """
        self.session_factory = session_factory
        self._snapshot = RoleSnapshot()

    # Snapshot reads (no I/O)

    @property
    def snapshot(self) -> RoleSnapshot:
        """The snapshot taken by the last successful refresh."""
        return self._snapshot

    def get(self, role_id: str) -> Role:
        """Get a role from the snapshot.

        Args:
            role_id: Role id.

        Returns:
            The cached role.

        Raises:
            RoleNotFoundError: If the snapshot has no such role.
        """
        role = self._snapshot.find(role_id)
        if role is None:
            raise RoleNotFoundError(role_id)
        return role

    # Store access

    async def refresh(self) -> RoleSnapshot:
        """Re-read all roles and swap in a new snapshot.

        The snapshot is replaced in a single assignment, and only after the
        read has fully succeeded.

        Raises:
            StoreError: If the store read fails; the old snapshot is kept.
        """
        roles = await self.fetch_all()
        snapshot = RoleSnapshot.from_roles(roles, loaded_at=datetime.now(timezone.utc))
        self._snapshot = snapshot
        logger.debug("Role snapshot refreshed", count=len(snapshot))
        return snapshot

    async def fetch(self, role_id: str) -> Role:
        """Read one role straight from the store.

        Raises:
            RoleNotFoundError: If no such role is stored.
            StoreError: If the store read fails.
        """
        try:
            async with self.session_factory() as session:
                model = await session.get(RoleModel, role_id)
                role = _to_entity(model) if model is not None else None
        except SQLAlchemyError as e:
            logger.error("Role read failed", role_id=role_id, error=str(e))
            raise StoreError(f"Failed to read role '{role_id}': {e}", role_id=role_id) from e

        if role is None:
            raise RoleNotFoundError(role_id)
        return role

    async def fetch_all(self) -> list[Role]:
        """Read every role straight from the store, ordered by position.

        Raises:
            StoreError: If the store read fails.
        """
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(RoleModel).order_by(RoleModel.position, RoleModel.id)
                )
                return [_to_entity(model) for model in result.scalars().all()]
        except SQLAlchemyError as e:
            logger.error("Role listing failed", error=str(e))
            raise StoreError(f"Failed to list roles: {e}") from e

    async def put(self, role: Role) -> Role:
        """Upsert a full role document.

        Stamps ``updated_at`` and bumps the stored revision. Whatever is
        stored is overwritten.

        Args:
            role: Complete role document to store.

        Returns:
            The role as stored.

        Raises:
            StoreError: If the write fails.
        """
        now = datetime.now(timezone.utc)
        try:
            async with self.session_factory() as session:
                model = await session.get(RoleModel, role.id)
                if model is None:
                    model = RoleModel(
                        id=role.id,
                        created_at=role.created_at or now,
                        revision=0,
                    )
                    session.add(model)
                for column, value in _document_values(role).items():
                    setattr(model, column, value)
                model.updated_at = now
                model.revision = (model.revision or 0) + 1
                stored = _to_entity(model)
                await session.commit()
        except SQLAlchemyError as e:
            logger.error("Role write failed", role_id=role.id, error=str(e))
            raise StoreError(f"Failed to write role '{role.id}': {e}", role_id=role.id) from e

        logger.debug("Role written", role_id=stored.id, revision=stored.revision)
        return stored

    async def compare_and_put(self, role: Role, expected_revision: int) -> Role:
        """Write a role only if its stored revision is still ``expected_revision``.

        Args:
            role: Complete role document to store.
            expected_revision: Revision the caller read before modifying.

        Returns:
            The role as stored.

        Raises:
            ConcurrentModificationError: If the stored revision moved on.
            RoleNotFoundError: If the role no longer exists.
            StoreError: If the write fails.
        """
        now = datetime.now(timezone.utc)
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    update(RoleModel)
                    .where(RoleModel.id == role.id, RoleModel.revision == expected_revision)
                    .values(
                        **_document_values(role),
                        updated_at=now,
                        revision=expected_revision + 1,
                    )
                )
                if result.rowcount == 1:
                    await session.commit()
                    model = await session.get(RoleModel, role.id, populate_existing=True)
                    return _to_entity(model)

                await session.rollback()
                current = await session.get(RoleModel, role.id)
                actual_revision = current.revision if current is not None else None
        except SQLAlchemyError as e:
            logger.error("Checked role write failed", role_id=role.id, error=str(e))
            raise StoreError(f"Failed to write role '{role.id}': {e}", role_id=role.id) from e

        if actual_revision is None:
            raise RoleNotFoundError(role.id)
        logger.info(
            "Checked role write rejected",
            role_id=role.id,
            expected_revision=expected_revision,
            actual_revision=actual_revision,
        )
        raise ConcurrentModificationError(role.id, expected_revision, actual_revision)

    async def delete(self, role_id: str) -> None:
        """Delete a role document.

        Raises:
            RoleNotFoundError: If no such role is stored.
            StoreError: If the delete fails.
        """
        try:
            async with self.session_factory() as session:
                model = await session.get(RoleModel, role_id)
                if model is not None:
                    await session.delete(model)
                    await session.commit()
        except SQLAlchemyError as e:
            logger.error("Role delete failed", role_id=role_id, error=str(e))
            raise StoreError(f"Failed to delete role '{role_id}': {e}", role_id=role_id) from e

        if model is None:
            raise RoleNotFoundError(role_id)
        logger.debug("Role deleted", role_id=role_id)

    # Defined last: inside the class body this name shadows the builtin.
    def list(self) -> list[Role]:
        """Get every cached role, ordered by position."""
        return list(self._snapshot.roles)
