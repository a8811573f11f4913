"""File-backed user directory.

Two JSON documents live side by side:
- the ids document: array of active id strings, in insertion order;
- the records document: array of every TrackedUser, soft-removed included.

Every mutation rewrites the affected documents in full. Writes go to a
temporary file that is fsynced and renamed over the target, so a crash never
leaves a half-written document. Blocking I/O runs in a worker thread; an
asyncio lock serializes each read-modify-write so the existence check and
the insert are atomic with respect to other requests in this process.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from collections.abc import Iterable, Sequence
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

from pydantic import ValidationError

from nexium.adapters.directory.base import AbstractUserDirectory, normalize_seed_ids, utcnow
from nexium.core.errors import ConflictAppError, NotFoundAppError, StorageAppError
from nexium.schemas.users import Profile, TrackedUser

logger = logging.getLogger(__name__)


class JsonFileUserDirectory(AbstractUserDirectory):
    """User directory persisted as two JSON documents."""

    def __init__(
        self,
        ids_path: Path,
        records_path: Path,
        *,
        seed_ids: Sequence[str] = (),
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._ids_path = Path(ids_path)
        self._records_path = Path(records_path)
        self._seed_ids = normalize_seed_ids(seed_ids)
        self._clock = clock
        self._lock = asyncio.Lock()

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"JsonFileUserDirectory(ids_path={self._ids_path!s}, records_path={self._records_path!s})"

    # ------------------------------------------------------------------ I/O

    def _read_document(self, path: Path) -> list[Any]:
        if not path.exists():
            self._write_document(path, [])
            logger.info("directory.document_created", extra={"path": str(path)})
            return []

        try:
            with path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, json.JSONDecodeError) as exc:
            logger.error(
                "directory.document_unreadable",
                extra={"path": str(path), "error_type": type(exc).__name__},
            )
            raise StorageAppError(
                code="directory_unreadable",
                message="User directory could not be read",
                details={"context": {"document": path.name}},
            ) from exc

        if not isinstance(data, list):
            raise StorageAppError(
                code="directory_corrupt",
                message="User directory document is not a JSON array",
                details={"context": {"document": path.name}},
            )
        return data

    def _write_document(self, path: Path, data: list[Any]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, path)
        except OSError as exc:
            Path(tmp_name).unlink(missing_ok=True)
            logger.error(
                "directory.write_failed",
                extra={"path": str(path), "error_type": type(exc).__name__},
            )
            raise StorageAppError(
                code="directory_write_failed",
                message="User directory could not be written",
                details={"context": {"document": path.name}},
            ) from exc

        logger.debug("directory.document_saved", extra={"path": str(path), "entries": len(data)})

    def _read_ids(self) -> list[str]:
        return [str(item) for item in self._read_document(self._ids_path)]

    def _read_records(self) -> list[TrackedUser]:
        try:
            return [TrackedUser.model_validate(item) for item in self._read_document(self._records_path)]
        except ValidationError as exc:
            raise StorageAppError(
                code="directory_corrupt",
                message="User directory contains an invalid record",
                details={"context": {"document": self._records_path.name}},
            ) from exc

    def _write_ids(self, ids: list[str]) -> None:
        self._write_document(self._ids_path, ids)

    def _write_records(self, records: list[TrackedUser]) -> None:
        self._write_document(
            self._records_path,
            [record.model_dump(mode="json", by_alias=True) for record in records],
        )

    @staticmethod
    def _index_of(records: list[TrackedUser], user_id: str) -> int | None:
        for index, record in enumerate(records):
            if record.id == user_id:
                return index
        return None

    # ----------------------------------------------------------- operations

    def _initialize_sync(self) -> None:
        ids = self._read_ids()
        records = self._read_records()
        if ids or not self._seed_ids:
            logger.info("directory.loaded", extra={"active": len(ids), "records": len(records)})
            return

        now = self._clock()
        for user_id in self._seed_ids:
            seeded = TrackedUser(id=user_id, added_at=now)
            index = self._index_of(records, user_id)
            if index is None:
                records.append(seeded)
            else:
                records[index] = seeded
        self._write_ids(list(self._seed_ids))
        self._write_records(records)
        logger.info("directory.seeded", extra={"active": len(self._seed_ids)})

    def _add_sync(self, user_id: str, username: str | None) -> TrackedUser:
        ids = self._read_ids()
        if user_id in ids:
            raise ConflictAppError(
                code="user_already_exists",
                message="User is already tracked",
                details={"user_id": user_id},
            )

        records = self._read_records()
        added = TrackedUser(id=user_id, username=username, added_at=self._clock())
        index = self._index_of(records, user_id)
        if index is None:
            records.append(added)
        else:
            records[index] = added

        self._write_ids([*ids, user_id])
        self._write_records(records)
        return added

    def _remove_sync(self, user_id: str) -> TrackedUser:
        ids = self._read_ids()
        if user_id not in ids:
            raise NotFoundAppError(
                code="user_not_tracked",
                message="User is not tracked",
                details={"user_id": user_id},
            )

        records = self._read_records()
        now = self._clock()
        index = self._index_of(records, user_id)
        if index is None:
            removed = TrackedUser(id=user_id, removed=True, removed_at=now)
            records.append(removed)
        else:
            removed = records[index].model_copy(update={"removed": True, "removed_at": now})
            records[index] = removed

        self._write_ids([item for item in ids if item != user_id])
        self._write_records(records)
        return removed

    def _update_usernames_sync(self, profiles: list[Profile]) -> int:
        records = self._read_records()
        by_id = {record.id: index for index, record in enumerate(records)}
        changed = 0
        for profile in profiles:
            index = by_id.get(profile.id)
            if index is None or records[index].username == profile.username:
                continue
            records[index] = records[index].model_copy(update={"username": profile.username})
            changed += 1
        if changed:
            self._write_records(records)
        return changed

    async def initialize(self) -> None:
        async with self._lock:
            await asyncio.to_thread(self._initialize_sync)

    async def list_active(self) -> list[str]:
        async with self._lock:
            return await asyncio.to_thread(self._read_ids)

    async def add(self, user_id: str, username: str | None) -> TrackedUser:
        async with self._lock:
            return await asyncio.to_thread(self._add_sync, user_id, username)

    async def remove(self, user_id: str) -> TrackedUser:
        async with self._lock:
            return await asyncio.to_thread(self._remove_sync, user_id)

    async def get_complete(self) -> list[TrackedUser]:
        async with self._lock:
            return await asyncio.to_thread(self._read_records)

    async def update_usernames(self, profiles: Iterable[Profile]) -> int:
        async with self._lock:
            return await asyncio.to_thread(self._update_usernames_sync, list(profiles))
