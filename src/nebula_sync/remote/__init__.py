"""REST access objects, one per backend resource. None of them touch the filesystem."""

from .auth import AuthDAO
from .challenges import CompletedChallengesDAO, DailyChallengesDAO
from .client import RestClient
from .cosmetics import CosmeticsDAO
from .inventory import InventoryDAO
from .player_stats import PlayerStatsDAO

__all__ = [
    "AuthDAO",
    "CompletedChallengesDAO",
    "CosmeticsDAO",
    "DailyChallengesDAO",
    "InventoryDAO",
    "PlayerStatsDAO",
    "RestClient",
]
