"""Database-backed user directory.

One table (``tracked_users``) accessed with parameterized statements through
an async SQLAlchemy engine. Each mutation is a single statement, so the
store's own atomicity decides conflicts:

- add: ``INSERT .. ON CONFLICT (id) DO UPDATE .. WHERE removed`` revives a
  soft-removed row; an active row makes the statement return nothing, which
  is the conflict signal.
  The row takes ``max(seq) + 1`` so listings follow insertion order even
  when two adds share a timestamp.
- remove: ``UPDATE .. WHERE id = :id AND NOT removed RETURNING ..``; no row
  returned means there was no active record.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import datetime, timezone
from typing import Any, Callable

from sqlalchemy import Row, false, func, select, true, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from nexium.adapters.directory.base import AbstractUserDirectory, normalize_seed_ids, utcnow
from nexium.core.db.database import Base
from nexium.core.errors import ConflictAppError, NotFoundAppError, StorageAppError
from nexium.models.tracked_user import TrackedUserRecord
from nexium.schemas.users import Profile, TrackedUser

logger = logging.getLogger(__name__)

_table = TrackedUserRecord.__table__
_COLUMNS = (_table.c.id, _table.c.username, _table.c.added_at, _table.c.removed, _table.c.removed_at)


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _next_seq():
    return select(func.coalesce(func.max(_table.c.seq), 0) + 1).scalar_subquery()


def _to_tracked_user(row: Row[Any]) -> TrackedUser:
    return TrackedUser(
        id=row.id,
        username=row.username,
        added_at=_as_utc(row.added_at),
        removed=bool(row.removed),
        removed_at=_as_utc(row.removed_at),
    )


class SqlUserDirectory(AbstractUserDirectory):
    """User directory stored in a single relational table."""

    def __init__(
        self,
        engine: AsyncEngine,
        *,
        seed_ids: Sequence[str] = (),
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._engine = engine
        self._seed_ids = normalize_seed_ids(seed_ids)
        self._clock = clock

    def _insert(self):
        """Return the dialect's ``insert`` construct (needed for ON CONFLICT)."""
        dialect = self._engine.dialect.name
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            raise StorageAppError(
                code="database_unsupported",
                message=f"Unsupported database dialect: {dialect}",
            )
        return insert

    def _storage_error(self, operation: str, exc: SQLAlchemyError) -> StorageAppError:
        logger.error(
            "directory.database_error",
            extra={"operation": operation, "error_type": type(exc).__name__},
        )
        return StorageAppError(
            code="directory_unavailable",
            message="User directory is unavailable",
            details={"context": {"operation": operation}},
        )

    async def initialize(self) -> None:
        """Create the table if needed and seed a directory with no active ids.

        Seed ids that were removed earlier are revived in seed order.

        Raises:
            StorageAppError: If the database cannot be reached.
        """
        try:
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
                active = (
                    await conn.execute(
                        select(func.count()).select_from(_table).where(_table.c.removed == false())
                    )
                ).scalar_one()
                if active == 0 and self._seed_ids:
                    insert = self._insert()
                    now = self._clock()
                    last_seq = (
                        await conn.execute(select(func.coalesce(func.max(_table.c.seq), 0)))
                    ).scalar_one()
                    for offset, user_id in enumerate(self._seed_ids, start=1):
                        stmt = insert(_table).values(
                            id=user_id,
                            username=None,
                            added_at=now,
                            removed=False,
                            removed_at=None,
                            seq=last_seq + offset,
                        )
                        stmt = stmt.on_conflict_do_update(
                            index_elements=[_table.c.id],
                            set_={
                                "username": None,
                                "added_at": stmt.excluded.added_at,
                                "removed": False,
                                "removed_at": None,
                                "seq": stmt.excluded.seq,
                            },
                        )
                        await conn.execute(stmt)
                    active = len(self._seed_ids)
                    logger.info("directory.seeded", extra={"active": active})
        except SQLAlchemyError as exc:
            logger.critical(
                "directory.database_unreachable",
                extra={"error_type": type(exc).__name__},
            )
            raise StorageAppError(
                code="database_unreachable",
                message="Could not connect to the user directory database",
            ) from exc

        logger.info("directory.loaded", extra={"backend": "database", "active": active})

    async def list_active(self) -> list[str]:
        stmt = (
            select(_table.c.id)
            .where(_table.c.removed == false())
            .order_by(_table.c.seq, _table.c.id)
        )
        try:
            async with self._engine.connect() as conn:
                result = await conn.execute(stmt)
                return [row.id for row in result]
        except SQLAlchemyError as exc:
            raise self._storage_error("list_active", exc) from exc

    async def add(self, user_id: str, username: str | None) -> TrackedUser:
        insert = self._insert()
        stmt = insert(_table).values(
            id=user_id,
            username=username,
            added_at=self._clock(),
            removed=False,
            removed_at=None,
            seq=_next_seq(),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[_table.c.id],
            set_={
                "username": stmt.excluded.username,
                "added_at": stmt.excluded.added_at,
                "removed": False,
                "removed_at": None,
                "seq": stmt.excluded.seq,
            },
            where=_table.c.removed == true(),
        ).returning(*_COLUMNS)

        try:
            async with self._engine.begin() as conn:
                row = (await conn.execute(stmt)).first()
        except SQLAlchemyError as exc:
            raise self._storage_error("add", exc) from exc

        if row is None:
            raise ConflictAppError(
                code="user_already_exists",
                message="User is already tracked",
                details={"user_id": user_id},
            )
        return _to_tracked_user(row)

    async def remove(self, user_id: str) -> TrackedUser:
        stmt = (
            update(_table)
            .where(_table.c.id == user_id, _table.c.removed == false())
            .values(removed=True, removed_at=self._clock())
            .returning(*_COLUMNS)
        )
        try:
            async with self._engine.begin() as conn:
                row = (await conn.execute(stmt)).first()
        except SQLAlchemyError as exc:
            raise self._storage_error("remove", exc) from exc

        if row is None:
            raise NotFoundAppError(
                code="user_not_tracked",
                message="User is not tracked",
                details={"user_id": user_id},
            )
        return _to_tracked_user(row)

    async def get_complete(self) -> list[TrackedUser]:
        stmt = select(*_COLUMNS).order_by(_table.c.seq, _table.c.id)
        try:
            async with self._engine.connect() as conn:
                result = await conn.execute(stmt)
                return [_to_tracked_user(row) for row in result]
        except SQLAlchemyError as exc:
            raise self._storage_error("get_complete", exc) from exc

    async def update_usernames(self, profiles: Iterable[Profile]) -> int:
        changed = 0
        try:
            async with self._engine.begin() as conn:
                for profile in profiles:
                    result = await conn.execute(
                        update(_table)
                        .where(_table.c.id == profile.id)
                        .where(
                            (_table.c.username.is_(None)) | (_table.c.username != profile.username)
                        )
                        .values(username=profile.username)
                    )
                    changed += result.rowcount or 0
        except SQLAlchemyError as exc:
            raise self._storage_error("update_usernames", exc) from exc
        return changed

    async def close(self) -> None:
        await self._engine.dispose()
