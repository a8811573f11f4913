"""HTTP client for the users API (``GET {base_url}/{id}`` → ``{id, name}``)."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

import httpx

from nexium.adapters.profile.base import AbstractProfileFetcher
from nexium.core.errors import ProfileFetchError, ProfileNotFoundError
from nexium.schemas.users import Profile

logger = logging.getLogger(__name__)


class HttpProfileFetcher(AbstractProfileFetcher):
    """Fetch profiles with a single request per id; no retries.

    Uses one shared ``httpx.AsyncClient``. When a client is injected (tests,
    custom transports) the caller owns its lifecycle.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the fetcher.

        Args:
            base_url: Users endpoint; the id is appended as the last segment.
            timeout_seconds: Timeout applied to every request.
            client: Optional pre-configured async client.
        """
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=timeout_seconds,
            headers={"Accept": "application/json"},
        )
        self.timeout_seconds = timeout_seconds

    async def fetch(self, user_id: str) -> Profile:
        url = f"{self.base_url}/{user_id}"
        try:
            response = await self.client.get(url, timeout=self.timeout_seconds)
        except httpx.HTTPError as exc:
            logger.warning(
                "profile.fetch_failed",
                extra={"user_id": user_id, "reason": type(exc).__name__},
            )
            raise ProfileFetchError(
                code="profile_fetch_failed",
                message=f"Profile API request failed for user {user_id}",
                details={"user_id": user_id},
            ) from exc

        if response.status_code == 404:
            logger.info("profile.not_found", extra={"user_id": user_id})
            raise ProfileNotFoundError(
                code="user_not_found",
                message=f"User {user_id} does not exist",
                details={"user_id": user_id, "upstream_status": 404},
            )

        if not response.is_success:
            logger.warning(
                "profile.fetch_failed",
                extra={"user_id": user_id, "upstream_status": response.status_code},
            )
            raise ProfileFetchError(
                code="profile_fetch_failed",
                message=f"Profile API returned status {response.status_code} for user {user_id}",
                details={"user_id": user_id, "upstream_status": response.status_code},
            )

        try:
            data = response.json()
            profile = Profile(id=data["id"], username=data["name"])
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning(
                "profile.malformed_payload",
                extra={"user_id": user_id, "reason": type(exc).__name__},
            )
            raise ProfileFetchError(
                code="profile_malformed",
                message=f"Profile API returned an unexpected payload for user {user_id}",
                details={"user_id": user_id},
            ) from exc

        logger.debug("profile.fetched", extra={"user_id": profile.id})
        return profile

    async def fetch_many(self, user_ids: Sequence[str]) -> list[Profile]:
        return list(await asyncio.gather(*(self.fetch(user_id) for user_id in user_ids)))

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()
