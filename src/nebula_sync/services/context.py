from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ..auth import AuthSession
from ..core.settings import Settings
from ..paths import AppPaths
from ..reachability import Reachability, SocketReachability
from ..remote import (
    CompletedChallengesDAO,
    CosmeticsDAO,
    DailyChallengesDAO,
    InventoryDAO,
    PlayerStatsDAO,
    RestClient,
)
from ..repositories import (
    ChallengeRepository,
    CosmeticsRepository,
    InventoryRepository,
    PlayerStatsRepository,
)

logger = logging.getLogger(__name__)


@dataclass
class SyncContext:
    """Everything a gameplay/UI caller needs for one signed-in user.

    Built once per login and passed explicitly to the service functions.
    """

    settings: Settings
    paths: AppPaths
    session: AuthSession
    reachability: Reachability
    stats_dao: PlayerStatsDAO
    inventory_dao: InventoryDAO
    stats: PlayerStatsRepository
    inventory: InventoryRepository
    challenges: ChallengeRepository
    cosmetics: CosmeticsRepository

    @property
    def user_id(self) -> str:
        return self.stats.user_id

    @property
    def token(self) -> str:
        return self.session.current_token()

    @classmethod
    def build(
        cls,
        settings: Settings,
        session: AuthSession,
        reachability: Optional[Reachability] = None,
        paths: Optional[AppPaths] = None,
        client: Optional[RestClient] = None,
    ) -> "SyncContext":
        paths = paths or AppPaths(storage=settings.storage)
        paths.ensure_dirs()
        client = client or session.dao.client
        reachability = reachability or SocketReachability(settings.backend.url)
        user_id = session.user_id
        if not user_id:
            logger.warning("Building sync context without a user id; tables will be unscoped")
        tokens = session.current_token

        stats_dao = PlayerStatsDAO(client, tokens)
        inventory_dao = InventoryDAO(client)
        daily_dao = DailyChallengesDAO(client)
        completed_dao = CompletedChallengesDAO(client, tokens)
        cosmetics_dao = CosmeticsDAO(client, tokens)

        return cls(
            settings=settings,
            paths=paths,
            session=session,
            reachability=reachability,
            stats_dao=stats_dao,
            inventory_dao=inventory_dao,
            stats=PlayerStatsRepository(user_id, stats_dao, paths, reachability, tokens),
            inventory=InventoryRepository(user_id, inventory_dao, paths, reachability),
            challenges=ChallengeRepository(user_id, daily_dao, completed_dao, paths, reachability),
            cosmetics=CosmeticsRepository(cosmetics_dao, paths, reachability),
        )
