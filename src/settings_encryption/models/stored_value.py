"""SQLAlchemy models for the three storage kinds."""

from __future__ import annotations

from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from settings_encryption.models.base import Base


class StoredValue(Base):
    """Global setting keyed by its full name. Values are usually tokens."""

    __tablename__ = "stored_values"

    key: Mapped[str] = mapped_column(sa.String(191), primary_key=True)
    value: Mapped[str] = mapped_column(sa.Text)
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime, server_default=sa.text("CURRENT_TIMESTAMP")
    )


class ExpiringValue(Base):
    """Cache entry; ``expires_at`` of ``None`` never expires."""

    __tablename__ = "expiring_values"

    key: Mapped[str] = mapped_column(sa.String(191), primary_key=True)
    value: Mapped[str] = mapped_column(sa.Text)
    expires_at: Mapped[datetime | None] = mapped_column(sa.DateTime, nullable=True)


class OwnerValue(Base):
    """Attribute scoped to one owner (a user, a record)."""

    __tablename__ = "owner_values"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[int] = mapped_column(sa.Integer, index=True)
    key: Mapped[str] = mapped_column(sa.String(191))
    value: Mapped[str] = mapped_column(sa.Text)

    __table_args__ = (
        sa.UniqueConstraint("owner_id", "key", name="uq_owner_values_owner_key"),
    )
