"""Webhook relay routes: one fixed ``POST /api/<name>`` per configured destination."""

from __future__ import annotations

import json
from collections.abc import Iterable
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request

from nexium.adapters.relay.webhook_client import WebhookRelay
from nexium.api.dependencies import get_webhook_relay
from nexium.core.errors import ValidationAppError
from nexium.schemas.relay import RelayResponse


async def _read_json_body(request: Request) -> Any:
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        return json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ValidationAppError(
            code="invalid_json",
            message="Request body must be valid JSON",
        ) from exc


def _make_relay_endpoint(destination: str):
    async def relay_endpoint(
        request: Request,
        relay: Annotated[WebhookRelay, Depends(get_webhook_relay)],
    ) -> RelayResponse:
        body = await _read_json_body(request)
        status = await relay.forward(destination, body)
        return RelayResponse(status=status)

    relay_endpoint.__name__ = f"relay_{destination.replace('-', '_')}"
    relay_endpoint.__doc__ = f"Forward the JSON body verbatim to the '{destination}' webhook."
    return relay_endpoint


def build_relay_router(destinations: Iterable[str]) -> APIRouter:
    """Build a router with one POST route per destination name.

    Args:
        destinations: Configured destination names (validated in settings).

    Returns:
        APIRouter mounted under ``/api``.
    """
    router = APIRouter(prefix="/api", tags=["Relay"])
    for destination in destinations:
        router.add_api_route(
            f"/{destination}",
            _make_relay_endpoint(destination),
            methods=["POST"],
            response_model=RelayResponse,
        )
    return router
