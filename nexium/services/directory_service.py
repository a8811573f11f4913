"""User directory service orchestrating validation, profile fetches and storage.

This service holds the business rules behind the /api/users routes:
- Input validation of user ids
- Early duplicate rejection so a known id never reaches the profile API
- Translation of profile API failures into client-facing errors on add
- Profile refresh for every active id
"""

from __future__ import annotations

import logging

from nexium.adapters.directory.base import AbstractUserDirectory
from nexium.adapters.profile.base import AbstractProfileFetcher
from nexium.core.errors import (
    ConflictAppError,
    ProfileFetchError,
    ProfileNotFoundError,
    ValidationAppError,
)
from nexium.schemas.users import Profile, TrackedUser
from nexium.utils.user_id import require_user_id, validate_user_id

logger = logging.getLogger(__name__)


class DirectoryService:
    """Operations behind the /api/users routes."""

    def __init__(self, directory: AbstractUserDirectory, fetcher: AbstractProfileFetcher) -> None:
        self.directory = directory
        self.fetcher = fetcher

    async def list_ids(self) -> list[str]:
        return await self.directory.list_active()

    async def history(self) -> list[TrackedUser]:
        return await self.directory.get_complete()

    async def refresh_profiles(self) -> list[Profile]:
        """Fetch profiles of every active id and cache their usernames.

        Returns:
            Profiles in directory order.

        Raises:
            UpstreamAppError: If any profile fetch fails.
        """
        user_ids = await self.directory.list_active()
        profiles = await self.fetcher.fetch_many(user_ids)
        changed = await self.directory.update_usernames(profiles)
        logger.info(
            "directory.profiles_refreshed",
            extra={"count": len(profiles), "changed": changed},
        )
        return profiles

    async def add_user(self, userid: str | int | None) -> tuple[TrackedUser, list[str]]:
        """Validate, fetch the profile of, and track ``userid``.

        Returns:
            The added record and the active ids after the add.

        Raises:
            ValidationAppError: Missing/malformed id, or profile API failure.
            ConflictAppError: If the id is already tracked.
        """
        user_id = validate_user_id(userid)
        logger.info("directory.add_requested", extra={"user_id": user_id})

        # Cheap pre-check so duplicates never reach the profile API; the
        # store's own conflict check below stays authoritative.
        if user_id in await self.directory.list_active():
            logger.info("directory.add_conflict", extra={"user_id": user_id})
            raise ConflictAppError(
                code="user_already_exists",
                message="already exists",
                details={"user_id": user_id},
            )

        try:
            profile = await self.fetcher.fetch(user_id)
        except (ProfileNotFoundError, ProfileFetchError) as exc:
            # Surfaced as 400; the code tells "no such user" from "API failed"
            raise ValidationAppError(
                code=exc.code,
                message="invalid user id or API error",
                details=exc.details,
            ) from exc

        added = await self.directory.add(user_id, profile.username)
        users = await self.directory.list_active()
        logger.info(
            "directory.user_added",
            extra={"user_id": user_id, "username": profile.username, "active": len(users)},
        )
        return added, users

    async def remove_user(self, userid: str | int | None) -> tuple[TrackedUser, list[str]]:
        """Soft-remove ``userid`` from the active list.

        Returns:
            The removed record and the active ids after the removal.

        Raises:
            ValidationAppError: If no id was provided.
            NotFoundAppError: If the id is not actively tracked.
        """
        user_id = require_user_id(userid)
        logger.info("directory.remove_requested", extra={"user_id": user_id})

        removed = await self.directory.remove(user_id)
        users = await self.directory.list_active()
        logger.info(
            "directory.user_removed",
            extra={"user_id": user_id, "active": len(users)},
        )
        return removed, users
