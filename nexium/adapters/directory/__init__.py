"""User directory adapters - file-backed and database-backed stores."""

from nexium.adapters.directory.base import AbstractUserDirectory
from nexium.adapters.directory.database import SqlUserDirectory
from nexium.adapters.directory.factory import create_user_directory
from nexium.adapters.directory.json_file import JsonFileUserDirectory

__all__ = [
    "AbstractUserDirectory",
    "JsonFileUserDirectory",
    "SqlUserDirectory",
    "create_user_directory",
]
