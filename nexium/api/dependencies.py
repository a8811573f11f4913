"""FastAPI dependencies resolving the components created at startup.

Components live on ``app.state`` (see ``nexium.core.app_factory.lifespan``);
tests swap them through ``app.dependency_overrides``.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from nexium.adapters.directory.base import AbstractUserDirectory
from nexium.adapters.profile.base import AbstractProfileFetcher
from nexium.adapters.relay.webhook_client import WebhookRelay
from nexium.services.directory_service import DirectoryService


def get_user_directory(request: Request) -> AbstractUserDirectory:
    return request.app.state.directory


def get_profile_fetcher(request: Request) -> AbstractProfileFetcher:
    return request.app.state.profile_fetcher


def get_webhook_relay(request: Request) -> WebhookRelay:
    return request.app.state.webhook_relay


def get_directory_service(
    directory: Annotated[AbstractUserDirectory, Depends(get_user_directory)],
    fetcher: Annotated[AbstractProfileFetcher, Depends(get_profile_fetcher)],
) -> DirectoryService:
    return DirectoryService(directory, fetcher)
