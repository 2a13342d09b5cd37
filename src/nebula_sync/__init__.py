"""Offline-first sync layer for the Nebula runner.

Local JSON tables under ``offline_db`` are reconciled with a PostgREST
backend: player stats, owned cosmetics, daily challenges and completions.
"""

from .errors import SyncError
from .result import Err, Ok, Result

__all__ = ["Err", "Ok", "Result", "SyncError"]

__version__ = "0.1.0"
