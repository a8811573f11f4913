"""Tracked user table."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, false
from sqlalchemy.orm import Mapped, mapped_column

from nexium.core.db.database import Base


class TrackedUserRecord(Base):
    """One row per id ever tracked; soft-deleted through ``removed``."""

    __tablename__ = "tracked_users"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    username: Mapped[str | None] = mapped_column(String(255), nullable=True)
    added_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, index=True)
    removed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    removed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    # Insertion order; bumped when a removed id is added back
    seq: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0", index=True)
