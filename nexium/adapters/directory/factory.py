"""Factory for the configured user directory backend."""

from nexium.adapters.directory.base import AbstractUserDirectory
from nexium.adapters.directory.database import SqlUserDirectory
from nexium.adapters.directory.json_file import JsonFileUserDirectory
from nexium.core.config import StoreSettings, settings
from nexium.core.db.database import create_engine_from_settings


def create_user_directory(store_settings: StoreSettings | None = None) -> AbstractUserDirectory:
    """Instantiate the user directory selected by ``STORE_BACKEND``.

    Args:
        store_settings: Optional store settings; defaults to global settings.

    Returns:
        AbstractUserDirectory: Uninitialized directory; call ``initialize()``.

    Raises:
        ValidationAppError: If the database backend is selected without a URL.
    """
    cfg = store_settings or settings.store

    if cfg.backend == "database":
        return SqlUserDirectory(
            create_engine_from_settings(cfg),
            seed_ids=cfg.seed_ids,
        )

    return JsonFileUserDirectory(
        cfg.data_dir / cfg.ids_file,
        cfg.data_dir / cfg.records_file,
        seed_ids=cfg.seed_ids,
    )
