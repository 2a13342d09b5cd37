"""File-backed JSON table: one JSON array of records per file.

The in-memory list is the source of truth between ``load()`` and ``save()``.
Mutators only flip the dirty flag; nothing touches the disk until ``save()``,
which writes a temp file and renames it over the target so a partially
written table is never visible under the real name.

No locking is done. One table instance is expected to own its file for the
duration of an operation.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable, Generic, Iterable, List, Optional, Type, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from ..errors import NotFound, ParseError, StoreIOError
from .fs import atomic_write_text

logger = logging.getLogger(__name__)

R = TypeVar("R")


class TableStore(Generic[R]):
    def __init__(self, path: Path, row_type: Type[R]) -> None:
        self.path = Path(path)
        self.row_type = row_type
        self._adapter = TypeAdapter(List[row_type])  # type: ignore[valid-type]
        self._rows: List[R] = []
        self._dirty = False

    def __repr__(self) -> str:
        return f"TableStore({self.path.name!r}, rows={len(self._rows)}, dirty={self._dirty})"

    @property
    def dirty(self) -> bool:
        return self._dirty

    # Load / save

    def load(self) -> List[R]:
        """Replace the in-memory rows with the file content.

        Raises NotFound when the file is absent or empty, ParseError when it
        cannot be decoded into a list of ``row_type``.
        """
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise NotFound(f"Missing file: {self.path}") from e
        except UnicodeDecodeError as e:
            raise ParseError(f"Table {self.path.name} is not UTF-8: {e}") from e
        except OSError as e:
            raise StoreIOError(f"Cannot read {self.path}: {e}") from e
        if not text.strip():
            raise NotFound(f"Empty file: {self.path}")
        try:
            rows = self._adapter.validate_json(text)
        except ValidationError as e:
            raise ParseError(f"Malformed table {self.path.name}: {e}") from e
        self._rows = list(rows)
        self._dirty = False
        logger.debug("Loaded %d rows from %s", len(self._rows), self.path)
        return self._rows

    def save(self) -> None:
        """Persist the rows if they changed since the last load/save.

        Raises StoreIOError on any filesystem failure; the previous file
        content is left untouched in that case.
        """
        if not self._dirty:
            return
        payload = json.dumps(self._dump_rows(), ensure_ascii=False, indent=2)
        try:
            atomic_write_text(self.path, payload)
        except OSError as e:
            logger.error("Failed to write table %s: %s", self.path, e)
            raise StoreIOError(f"Cannot write {self.path}: {e}") from e
        self._dirty = False
        logger.debug("Saved %d rows to %s", len(self._rows), self.path)

    def _dump_rows(self) -> List[Any]:
        return [r.model_dump(mode="json") if isinstance(r, BaseModel) else r for r in self._rows]

    # Reads

    def all(self) -> List[R]:
        return self._rows

    def first(self) -> Optional[R]:
        return self._rows[0] if self._rows else None

    # Mutators

    def add(self, row: R) -> None:
        self._rows.append(row)
        self._dirty = True

    def add_if_absent(self, row: R) -> bool:
        if row in self._rows:
            return False
        self.add(row)
        return True

    def replace_all(self, rows: Iterable[R]) -> None:
        self._rows = list(rows)
        self._dirty = True

    def remove_where(self, predicate: Callable[[R], bool]) -> int:
        kept = [r for r in self._rows if not predicate(r)]
        removed = len(self._rows) - len(kept)
        if removed:
            self._rows = kept
            self._dirty = True
        return removed

    def clear(self) -> None:
        self._rows = []
        self._dirty = True
