"""SQLAlchemy model for the system_settings table.

Each row is one JSON settings document keyed by name (e.g. 'roles').
"""

from datetime import datetime

from sqlalchemy import JSON, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from rolekeeper.infrastructure.persistence.database import Base


class SystemSettingModel(Base):
    """SQLAlchemy model for the system_settings table.

    Attributes:
        key: Settings document name, primary key.
        value: JSON document body.
        updated_at: Last write timestamp.
    """

    __tablename__ = "system_settings"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<SystemSetting(key={self.key})>"
