"""Profile adapter layer - clients of the third-party users API."""

from nexium.adapters.profile.base import AbstractProfileFetcher
from nexium.adapters.profile.http_client import HttpProfileFetcher

__all__ = [
    "AbstractProfileFetcher",
    "HttpProfileFetcher",
]
