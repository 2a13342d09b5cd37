from __future__ import annotations

import dataclasses
import logging
import os
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

ENV_API_URL = "NEBULA_API_URL"
ENV_API_KEY = "NEBULA_API_KEY"
ENV_DATA_DIR = "NEBULA_DATA_DIR"


@dataclass
class BackendSettings:
    url: str = "https://nebula.supabase.co"
    api_key: str = ""
    timeout: float = 10


@dataclass
class StorageSettings:
    root: Optional[str] = None
    db_dirname: str = "offline_db"
    prefs_filename: str = "prefs.json"


@dataclass
class GameplaySettings:
    default_skin: str = "default"


@dataclass
class Settings:
    backend: BackendSettings = field(default_factory=BackendSettings)
    storage: StorageSettings = field(default_factory=StorageSettings)
    gameplay: GameplaySettings = field(default_factory=GameplaySettings)

    @staticmethod
    def _load_yaml(path: Path) -> dict:
        with path.open("r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}

    @classmethod
    def _deep_merge(cls, base: dict, overlay: dict) -> dict:
        merged = dict(base)
        for k, v in (overlay or {}).items():
            if isinstance(v, dict) and isinstance(base.get(k), dict):
                merged[k] = cls._deep_merge(base[k], v)
            else:
                merged[k] = v
        return merged

    @staticmethod
    def _env_overlay() -> dict:
        overlay: dict = {}
        if os.getenv(ENV_API_URL):
            overlay.setdefault("backend", {})["url"] = os.environ[ENV_API_URL]
        if os.getenv(ENV_API_KEY):
            overlay.setdefault("backend", {})["api_key"] = os.environ[ENV_API_KEY]
        if os.getenv(ENV_DATA_DIR):
            overlay.setdefault("storage", {})["root"] = os.environ[ENV_DATA_DIR]
        return overlay

    @classmethod
    def _from_dict(cls, data: dict) -> "Settings":
        backend = BackendSettings(**data.get("backend", {}))
        storage = StorageSettings(**data.get("storage", {}))
        gameplay = GameplaySettings(**data.get("gameplay", {}))
        return Settings(backend=backend, storage=storage, gameplay=gameplay)

    @classmethod
    def load(cls, user_path: Optional[Path] = None) -> "Settings":
        """Load settings from built-in defaults, an optional user file and the environment.

        Precedence (lowest to highest): bundled YAML, user YAML, NEBULA_* variables.
        """
        try:
            with resources.files("nebula_sync.config").joinpath("default_settings.yaml").open("r", encoding="utf-8") as f:
                default_data = yaml.safe_load(f) or {}
        except FileNotFoundError:
            logger.warning("Default settings not found; falling back to dataclass defaults.")
            default_data = dataclasses.asdict(Settings())

        user_data = {}
        if user_path is not None:
            if user_path.exists():
                user_data = cls._load_yaml(user_path)
                logger.info("Loaded user settings from %s", user_path)
            else:
                logger.warning("User settings file not found: %s", user_path)

        merged = cls._deep_merge(default_data, user_data)
        merged = cls._deep_merge(merged, cls._env_overlay())
        settings = cls._from_dict(merged)
        logger.debug("Settings merged: %s", settings)
        return settings

    def save(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            yaml.safe_dump(dataclasses.asdict(self), f, sort_keys=False)
        logger.info("Saved settings to %s", path)
