from abc import ABC, abstractmethod
from collections.abc import Sequence

from nexium.schemas.users import Profile


class AbstractProfileFetcher(ABC):
    """Interface for clients of the third-party profile API."""

    @abstractmethod
    async def fetch(self, user_id: str) -> Profile:
        """Fetch and normalize the profile of ``user_id``.

        Raises:
            ProfileNotFoundError: If the upstream API reports no such user.
            ProfileFetchError: If the call fails for any other reason.
        """
        ...

    @abstractmethod
    async def fetch_many(self, user_ids: Sequence[str]) -> list[Profile]:
        """Fetch several profiles concurrently, preserving input order.

        Fails as a whole when any single fetch fails.
        """
        ...

    async def aclose(self) -> None:
        """Release network resources."""
