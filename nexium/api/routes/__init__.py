from __future__ import annotations

from nexium.api.routes.health import router as health_router
from nexium.api.routes.relay import build_relay_router
from nexium.api.routes.users import router as users_router

__all__ = ["build_relay_router", "health_router", "users_router"]
