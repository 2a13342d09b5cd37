from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from ..errors import StoreIOError
from ..models import PlayerStats, utcnow
from ..result import Err, Ok, Result
from .context import SyncContext

logger = logging.getLogger(__name__)


@dataclass
class RunOutcome:
    stats: PlayerStats
    reward_coins: int = 0
    completed_ids: List[int] = field(default_factory=list)
    session_coins: int = 0

    @property
    def total_coins(self) -> int:
        """Coins credited for the run, challenge rewards included."""
        return self.session_coins + self.reward_coins


def load_stats(ctx: SyncContext) -> Optional[PlayerStats]:
    """Best available stats: a sync when online, else the local cache."""
    if ctx.reachability.is_online():
        synced = ctx.stats.sync()
        if synced.ok:
            return synced.value
        logger.warning("Stats sync failed: %s", synced.message)
    cached = ctx.stats.get()
    if cached.ok:
        return cached.value
    logger.warning("No local stats: %s", cached.message)
    return None


def apply_run(
    stats: Optional[PlayerStats],
    user_id: str,
    distance: int,
    coins: int,
    challenges_done: int,
    skin: str = "default",
) -> PlayerStats:
    """Fold one run into the aggregate, creating a zero record first if needed."""
    updated = (stats or PlayerStats.zero(user_id, skin)).model_copy()
    updated.total_sessions += 1
    updated.total_distance += distance
    updated.total_coins_collected += coins
    updated.best_distance = max(updated.best_distance, distance)
    updated.best_coins_earned = max(updated.best_coins_earned, coins)
    updated.challenges_completed += challenges_done
    updated.updated_at = utcnow()
    return updated


def finish_run(ctx: SyncContext, session_distance: int, session_coins: int) -> Result[RunOutcome]:
    """End-of-run bookkeeping: evaluate daily challenges, grant rewards, save stats."""
    stats = load_stats(ctx)

    active = ctx.challenges.active_challenges()
    if not active.ok:
        logger.warning("No active challenges available: %s", active.message)
    candidates = active.value if active.ok else []

    done = set(ctx.challenges.completed_ids().unwrap())
    logger.info("Evaluating %d challenges; %d already completed", len(candidates), len(done))

    reward = 0
    completed: List[int] = []
    for challenge in candidates:
        if challenge.id in done or not challenge.is_satisfied(session_distance, session_coins):
            continue
        done.add(challenge.id)
        reward += challenge.reward_coins
        completed.append(challenge.id)
        logger.info("Challenge %s completed (+%d coins)", challenge.id, challenge.reward_coins)
        marked = ctx.challenges.mark_completed(challenge.id)
        if not marked.ok:
            logger.error("Completion %s could not be recorded: %s", challenge.id, marked.message)

    run_coins = session_coins + reward
    updated = apply_run(
        stats,
        ctx.user_id,
        session_distance,
        run_coins,
        len(completed),
        skin=ctx.settings.gameplay.default_skin,
    )
    saved = ctx.stats.save(updated)
    if not saved.ok:
        if isinstance(saved.error, StoreIOError):
            return Err(saved.error)
        # Written locally; the server copy catches up on the next sync.
        logger.warning("Stats saved locally but not pushed: %s", saved.message)
        return Ok(RunOutcome(updated, reward, completed, session_coins))
    return Ok(RunOutcome(saved.value, reward, completed, session_coins))
