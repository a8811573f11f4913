from __future__ import annotations

"""Application factory for FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers) and
the lifespan that owns the process-wide components: the rate limiter, the
user directory and the outbound HTTP clients.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from nexium.adapters.directory.factory import create_user_directory
from nexium.adapters.profile.http_client import HttpProfileFetcher
from nexium.adapters.relay.webhook_client import WebhookRelay
from nexium.api.routes import build_relay_router, health_router, users_router
from nexium.core.config import settings
from nexium.core.errors import AppError
from nexium.core.exception_handlers import setup_exception_handlers
from nexium.core.logging import configure_logging
from nexium.core.middleware import request_id_middleware
from nexium.core.openapi import apply_openapi_customizations
from nexium.core.rate_limit import init_rate_limiter, rate_limit_middleware

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create components on startup and release them on shutdown.

    A directory that cannot be initialized (e.g. database unreachable) aborts
    startup, which terminates the server process.
    """
    init_rate_limiter()

    directory = create_user_directory()
    try:
        await directory.initialize()
    except AppError as exc:
        logger.critical(
            "startup.directory_failed",
            extra={"error_code": exc.code, "backend": settings.store.backend},
        )
        await directory.close()
        raise

    fetcher = HttpProfileFetcher(
        settings.profile.base_url,
        timeout_seconds=settings.profile.timeout_seconds,
    )
    relay = WebhookRelay(
        settings.relay.destinations,
        timeout_seconds=settings.relay.timeout_seconds,
    )

    app.state.directory = directory
    app.state.profile_fetcher = fetcher
    app.state.webhook_relay = relay
    logger.info(
        "startup.complete",
        extra={
            "backend": settings.store.backend,
            "relay_destinations": relay.destinations,
        },
    )

    try:
        yield
    finally:
        await fetcher.aclose()
        await relay.aclose()
        await directory.close()
        logger.info("shutdown.complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Nexium API",
        description=(
            "Tracks a list of platform user ids, refreshes their cached profile "
            "data from the users API, and relays JSON payloads to configured "
            "webhooks. Every request is rate limited per client address."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    # Middleware: the last registered runs first, so the request id is set
    # before the rate limiter logs anything.
    app.middleware("http")(rate_limit_middleware)
    app.middleware("http")(request_id_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.app.cors_allow_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(health_router)
    app.include_router(users_router)
    app.include_router(build_relay_router(settings.relay.destinations))

    # OpenAPI customizations (tags)
    apply_openapi_customizations(app)

    return app
