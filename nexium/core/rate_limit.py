"""Admission filter: per-client rate limiting for every HTTP request.

This module wires the rate limiting adapter into the HTTP layer as a
middleware, so it gates every route (including ``/`` and ``/health``).

Rate limiting strategy:
- Fixed-window limit per client address.
- The address is the connection peer, or the first X-Forwarded-For entry
  when the deployment sits behind a trusted proxy.
- Fail-open: an unexpected limiter error is logged and the request proceeds.
"""

from __future__ import annotations

import hashlib
import logging

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse

from nexium.adapters.rate_limit.base import AbstractRateLimiter
from nexium.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from nexium.core.config import settings
from nexium.core.exception_handlers import build_error_content

logger = logging.getLogger(__name__)


_limiter: AbstractRateLimiter | None = None
_limiter_config: tuple[int, int, int, int] | None = None


def _current_config() -> tuple[int, int, int, int]:
    return (
        settings.app.rate_limit_requests,
        settings.app.rate_limit_window_seconds,
        settings.app.rate_limit_max_keys,
        settings.app.rate_limit_sweep_interval_seconds,
    )


def init_rate_limiter() -> AbstractRateLimiter:
    """Build the process-wide limiter from current settings.

    Called once at application startup; replaces any previous instance.
    """

    global _limiter, _limiter_config

    config = _current_config()
    _limiter = InMemoryFixedWindowRateLimiter(
        limit=settings.app.rate_limit_requests,
        window_seconds=settings.app.rate_limit_window_seconds,
        max_keys=settings.app.rate_limit_max_keys,
        sweep_interval_seconds=settings.app.rate_limit_sweep_interval_seconds,
    )
    _limiter_config = config
    logger.info(
        "rate_limit.initialized",
        extra={
            "limit": config[0],
            "window_s": config[1],
            "max_keys": config[2],
            "sweep_interval_s": config[3],
        },
    )
    return _limiter


def get_rate_limiter() -> AbstractRateLimiter:
    """Return the process-wide rate limiter instance.

    Built lazily when startup did not initialize it. If configuration changes
    (primarily in tests), the limiter is rebuilt.
    """

    if _limiter is None or _limiter_config != _current_config():
        return init_rate_limiter()
    return _limiter


def reset_rate_limiter() -> None:
    """Forget the process-wide limiter and all client windows."""

    global _limiter, _limiter_config
    _limiter = None
    _limiter_config = None


def get_client_address(request: Request) -> str:
    """Derive the client address used as the limiter key."""

    if settings.app.rate_limit_trust_forwarded_for:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            first = forwarded.split(",")[0].strip()
            if first:
                return first

    return request.client.host if request.client else "unknown"


def _hash_limiter_key(key: str) -> str:
    """Hash the rate limit key for logging without exposing addresses."""
    return hashlib.sha256(key.encode()).hexdigest()[:16]


async def rate_limit_middleware(request: Request, call_next) -> Response:
    """Consume one unit of the client's budget, or answer 429.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        The downstream response, or a 429 JSON response carrying ``retry``
        (whole seconds until the client's window resets).
    """

    if not settings.app.rate_limit_enabled:
        return await call_next(request)

    key = get_client_address(request)
    try:
        result = get_rate_limiter().consume(key)
    except Exception:
        logger.exception(
            "rate_limit.error",
            extra={"key_hash": _hash_limiter_key(key), "fail_open": True},
        )
        return await call_next(request)

    if result.allowed:
        logger.debug(
            "rate_limit.allowed",
            extra={
                "key_hash": _hash_limiter_key(key),
                "limit": result.limit,
                "remaining": result.remaining,
            },
        )
        return await call_next(request)

    retry_after = result.retry_after_seconds or 0
    logger.warning(
        "rate_limit.exceeded",
        extra={
            "key_hash": _hash_limiter_key(key),
            "limit": result.limit,
            "window_s": settings.app.rate_limit_window_seconds,
            "retry_after_s": retry_after,
            "route": request.url.path,
        },
    )

    headers: dict[str, str] = {}
    if settings.app.rate_limit_include_headers:
        headers["Retry-After"] = str(retry_after)
        headers["X-RateLimit-Limit"] = str(result.limit)
        headers["X-RateLimit-Remaining"] = str(result.remaining)
        headers["X-RateLimit-Reset"] = str(result.reset_at)

    content = build_error_content(
        "rate_limited",
        "Too many requests. Try again later.",
        {"retry_after": retry_after},
    )
    content["retry"] = retry_after
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content=content,
        headers=headers or None,
    )
