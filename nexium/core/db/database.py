"""Async SQLAlchemy engine construction for the database-backed directory."""

from __future__ import annotations

from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from nexium.core.config import StoreSettings
from nexium.core.errors import ValidationAppError


class Base(DeclarativeBase):
    pass


def build_database_url(store_settings: StoreSettings) -> URL:
    """Resolve the configured URL, injecting the separately stored credential.

    Raises:
        ValidationAppError: If no database URL is configured.
    """
    if not store_settings.database_url:
        raise ValidationAppError(
            code="database_url_missing",
            message="Database backend requires STORE_DATABASE_URL",
        )

    url = make_url(store_settings.database_url)
    if store_settings.database_password:
        url = url.set(password=store_settings.database_password)
    return url


def create_engine_from_settings(store_settings: StoreSettings) -> AsyncEngine:
    """Create the async engine for the directory table."""
    url = build_database_url(store_settings)
    return create_async_engine(url, echo=False, pool_pre_ping=True)
