from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from platformdirs import PlatformDirs

from .core.settings import ENV_DATA_DIR, StorageSettings

LOGGER = logging.getLogger("nebula_sync.paths")
LOGGER.addHandler(logging.NullHandler())

APP_NAME = "Nebula"

DAILY_CHALLENGES_FILE = "daily_challenges.json"
COSMETICS_FILE = "cosmetics.json"


class AppPaths:
    """Resolve the app-private storage root and the offline table files beneath it.

    Layout::

        <data_dir>/prefs.json
        <data_dir>/offline_db/{user}-player_stats.json
        <data_dir>/offline_db/{user}-inventory.json
        <data_dir>/offline_db/{user}-completed_challenges.json
        <data_dir>/offline_db/{user}-pending_completions.json
        <data_dir>/offline_db/daily_challenges.json
        <data_dir>/offline_db/cosmetics.json

    The root comes from the explicit ``root`` argument, then NEBULA_DATA_DIR,
    then ``storage.root``, then ``platformdirs``' user data dir.
    """

    def __init__(
        self,
        root: Optional[Path] = None,
        storage: Optional[StorageSettings] = None,
        app_name: str = APP_NAME,
    ) -> None:
        storage = storage or StorageSettings()
        self._data_dir = self._compute_dir(root, storage.root, app_name)
        self._db_dir = self._data_dir / storage.db_dirname
        self._prefs_path = self._data_dir / storage.prefs_filename

    @staticmethod
    def _compute_dir(explicit: Optional[Path], configured: Optional[str], app_name: str) -> Path:
        if explicit is not None:
            return Path(explicit).expanduser().resolve()
        override = os.getenv(ENV_DATA_DIR) or configured
        if override:
            return Path(override).expanduser().resolve()
        dirs = PlatformDirs(appname=app_name, appauthor=False)
        return Path(dirs.user_data_dir).expanduser().resolve()

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    @property
    def db_dir(self) -> Path:
        return self._db_dir

    @property
    def prefs_path(self) -> Path:
        return self._prefs_path

    def ensure_dirs(self) -> None:
        self._db_dir.mkdir(parents=True, exist_ok=True)

    # Table files

    def player_stats(self, user_id: str) -> Path:
        return self._db_dir / f"{user_id}-player_stats.json"

    def inventory(self, user_id: str) -> Path:
        return self._db_dir / f"{user_id}-inventory.json"

    def completed_challenges(self, user_id: str) -> Path:
        return self._db_dir / f"{user_id}-completed_challenges.json"

    def pending_completions(self, user_id: str) -> Path:
        return self._db_dir / f"{user_id}-pending_completions.json"

    def daily_challenges(self) -> Path:
        return self._db_dir / DAILY_CHALLENGES_FILE

    def cosmetics(self) -> Path:
        return self._db_dir / COSMETICS_FILE
