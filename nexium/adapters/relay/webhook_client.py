"""Forward JSON payloads verbatim to preconfigured webhook destinations.

No schema validation, no signing, no retry. Destination URLs usually embed
their own secret token, so they are never logged.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

import httpx

from nexium.core.errors import NotFoundAppError, WebhookRelayError

logger = logging.getLogger(__name__)


class WebhookRelay:
    """POST caller-supplied JSON to one of a fixed set of destinations."""

    def __init__(
        self,
        destinations: Mapping[str, str],
        *,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._destinations = dict(destinations)
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout_seconds)
        self.timeout_seconds = timeout_seconds

    @property
    def destinations(self) -> list[str]:
        """Configured destination names, in configuration order."""
        return list(self._destinations)

    async def forward(self, destination: str, body: Any) -> int:
        """Forward ``body`` to ``destination``.

        Args:
            destination: Configured destination name.
            body: Any JSON-serializable value, sent unmodified.

        Returns:
            HTTP status code returned by the destination (always 2xx).

        Raises:
            NotFoundAppError: If ``destination`` is not configured.
            WebhookRelayError: If the destination is unreachable or non-2xx.
        """
        url = self._destinations.get(destination)
        if url is None:
            raise NotFoundAppError(
                code="relay_destination_unknown",
                message=f"Unknown relay destination: {destination}",
                details={"destination": destination},
            )

        logger.info("relay.forwarding", extra={"destination": destination})
        try:
            # Serialized by hand: httpx drops the body entirely for json=None
            response = await self.client.post(
                url,
                content=json.dumps(body).encode("utf-8"),
                headers={"Content-Type": "application/json"},
                timeout=self.timeout_seconds,
            )
        except httpx.HTTPError as exc:
            logger.error(
                "relay.unreachable",
                extra={"destination": destination, "reason": type(exc).__name__},
            )
            raise WebhookRelayError(
                code="webhook_forward_failed",
                message="Failed to forward webhook",
                details={"destination": destination},
            ) from exc

        if not response.is_success:
            logger.error(
                "relay.rejected",
                extra={"destination": destination, "upstream_status": response.status_code},
            )
            raise WebhookRelayError(
                code="webhook_forward_failed",
                message=f"Webhook destination returned status {response.status_code}",
                details={"destination": destination, "upstream_status": response.status_code},
            )

        logger.info(
            "relay.forwarded",
            extra={"destination": destination, "upstream_status": response.status_code},
        )
        return response.status_code

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()
