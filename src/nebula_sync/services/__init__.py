"""Orchestration invoked by gameplay and menu code."""

from .bootstrap import bootstrap_player
from .context import SyncContext
from .run_session import RunOutcome, apply_run, finish_run, load_stats
from .shop import purchase_cosmetic

__all__ = [
    "RunOutcome",
    "SyncContext",
    "apply_run",
    "bootstrap_player",
    "finish_run",
    "load_stats",
    "purchase_cosmetic",
]
