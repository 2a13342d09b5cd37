"""Repositories reconcile one aggregate's local table with its DAO.

They are the only components that touch both the filesystem and the network.
"""

from .challenges import ChallengeRepository
from .cosmetics import CosmeticsRepository
from .inventory import InventoryRepository
from .player_stats import PlayerStatsRepository

__all__ = [
    "ChallengeRepository",
    "CosmeticsRepository",
    "InventoryRepository",
    "PlayerStatsRepository",
]
