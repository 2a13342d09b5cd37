from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from .fs import atomic_write_text

logger = logging.getLogger(__name__)


class PrefsStore:
    """Small key-value settings file for values that survive restarts (tokens, last login).

    Reads lazily on first access; a corrupt file is treated as empty.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._data: Optional[Dict[str, Any]] = None

    def _load(self) -> Dict[str, Any]:
        if self._data is not None:
            return self._data
        data: Dict[str, Any] = {}
        if self.path.exists():
            try:
                raw = json.loads(self.path.read_text(encoding="utf-8") or "{}")
                if isinstance(raw, dict):
                    data = raw
                else:
                    logger.warning("Prefs file %s is not an object; ignoring", self.path)
            except (OSError, ValueError) as e:
                logger.warning("Failed to read prefs %s: %s", self.path, e)
        self._data = data
        return data

    def get(self, key: str, default: Any = None) -> Any:
        return self._load().get(key, default)

    def get_str(self, key: str, default: str = "") -> str:
        value = self.get(key, default)
        return value if isinstance(value, str) else default

    def set(self, key: str, value: Any) -> None:
        self._load()[key] = value

    def delete(self, key: str) -> None:
        self._load().pop(key, None)

    def save(self) -> None:
        atomic_write_text(self.path, json.dumps(self._load(), indent=2, sort_keys=True))
