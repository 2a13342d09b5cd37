"""Local persistence: atomic file writes, JSON tables and the prefs file."""

from .prefs import PrefsStore
from .table import TableStore

__all__ = ["PrefsStore", "TableStore"]
