"""User directory interface.

Routes and services depend on this abstraction; the file-backed and
database-backed stores are interchangeable behind it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from datetime import datetime, timezone

from nexium.schemas.users import Profile, TrackedUser


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AbstractUserDirectory(ABC):
    """Durable store of tracked ids plus cached profile attributes."""

    @abstractmethod
    async def initialize(self) -> None:
        """Prepare storage and apply seed ids when the directory is empty.

        Raises:
            StorageAppError: If the storage cannot be reached or prepared.
        """
        raise NotImplementedError

    @abstractmethod
    async def list_active(self) -> list[str]:
        """Return active ids in insertion order."""
        raise NotImplementedError

    @abstractmethod
    async def add(self, user_id: str, username: str | None) -> TrackedUser:
        """Track ``user_id``, reviving a soft-removed record if one exists.

        Raises:
            ConflictAppError: If ``user_id`` is already active.
        """
        raise NotImplementedError

    @abstractmethod
    async def remove(self, user_id: str) -> TrackedUser:
        """Soft-remove the active record for ``user_id``.

        Raises:
            NotFoundAppError: If no active record exists for ``user_id``.
        """
        raise NotImplementedError

    @abstractmethod
    async def get_complete(self) -> list[TrackedUser]:
        """Return every record, soft-removed ones included."""
        raise NotImplementedError

    @abstractmethod
    async def update_usernames(self, profiles: Iterable[Profile]) -> int:
        """Refresh cached usernames of existing records.

        Returns:
            Number of records whose username changed.
        """
        raise NotImplementedError

    async def close(self) -> None:
        """Release resources held by the store."""


def normalize_seed_ids(seed_ids: Sequence[str]) -> list[str]:
    """Drop duplicates from ``seed_ids`` while keeping their order."""
    return list(dict.fromkeys(seed_ids))
