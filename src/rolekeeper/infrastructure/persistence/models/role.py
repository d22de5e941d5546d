"""SQLAlchemy model for the roles table.

One row per role document, keyed by the role's slug id.
"""

from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from rolekeeper.domain.entities import MAX_ROLE_ID_LENGTH
from rolekeeper.infrastructure.persistence.database import Base


class RoleModel(Base):
    """SQLAlchemy model for the roles table.

    Attributes:
        id: Role slug, primary key.
        name: Display name.
        color: Hex display color.
        position: Ordering hint; lower ranks higher.
        permissions: Sparse JSON object of permission key to bool.
        is_default: Role implicitly held by users without an assignment.
        is_protected: Immutable, bypass-all role.
        created_at: Creation timestamp.
        updated_at: Last write timestamp.
        revision: Write counter bumped by the repository on every write.
    """

    __tablename__ = "roles"

    id: Mapped[str] = mapped_column(
        String(MAX_ROLE_ID_LENGTH),
        primary_key=True,
        comment="Role slug (e.g., 'staff', 'store-manager')",
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    color: Mapped[str] = mapped_column(String(16), nullable=False, default="#6b7280")
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0, index=True)
    permissions: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_protected: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    revision: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<Role(id={self.id}, name={self.name}, position={self.position})>"
