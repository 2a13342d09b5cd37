from __future__ import annotations

import logging
from typing import Callable

from ..errors import NoCachedData, NoLocalData, NotFound, SyncError
from ..models import PlayerStats, utcnow
from ..paths import AppPaths
from ..reachability import Reachability
from ..remote.player_stats import PlayerStatsDAO
from ..result import Err, Ok, Result
from ..storage.table import TableStore

logger = logging.getLogger(__name__)


class PlayerStatsRepository:
    """Keeps one user's stats row consistent between ``{user}-player_stats.json`` and the server.

    The local table always ends up holding exactly one record. Conflicts are
    settled by ``updated_at``: the strictly newer side wins, and on a tie the
    local copy (the writer that is running now) wins.
    """

    def __init__(
        self,
        user_id: str,
        dao: PlayerStatsDAO,
        paths: AppPaths,
        reachability: Reachability,
        token_provider: Callable[[], str],
    ) -> None:
        self.user_id = user_id
        self.dao = dao
        self.reachability = reachability
        self.token_provider = token_provider
        self.local: TableStore[PlayerStats] = TableStore(paths.player_stats(user_id), PlayerStats)

    def get(self) -> Result[PlayerStats]:
        """Cached stats from disk, without any network traffic."""
        try:
            self.local.load()
        except SyncError as e:
            return Err(e)
        cached = self.local.first()
        if cached is None:
            return Err(NoCachedData("No cached player stats"))
        return Ok(cached)

    def save(
        self,
        dto: PlayerStats,
        push_remote: bool = True,
        touch_timestamp: bool = True,
    ) -> Result[PlayerStats]:
        """Write ``dto`` as the sole local record and optionally upsert it remotely.

        Offline, the remote push is skipped and the call still succeeds; the
        next ``sync()`` carries the change upstream.
        """
        if touch_timestamp:
            dto = dto.model_copy(update={"updated_at": utcnow()})
        self.local.replace_all([dto])
        try:
            self.local.save()
        except SyncError as e:
            return Err(e)

        if not push_remote:
            return Ok(dto)
        if not self.reachability.is_online():
            logger.info("Offline; stats for %s saved locally only", self.user_id)
            return Ok(dto)
        pushed = self.dao.upsert_stats(dto)
        if not pushed.ok:
            return Err(pushed.error)
        return Ok(dto)

    def sync(self) -> Result[PlayerStats]:
        """Reconcile local and remote stats and return the winning record."""
        try:
            self.local.load()
        except NotFound:
            logger.debug("No local stats file for %s", self.user_id)
        except SyncError as e:
            logger.warning("Could not load local stats: %s", e)

        local = self.local.first()
        if local is None:
            return Err(NoLocalData("No local player stats to synchronize"))

        fetched = self.dao.get_stats(self.token_provider())
        if not fetched.ok:
            logger.warning("Remote stats unavailable (%s); pushing local copy", fetched.message)
            return self._push(local, self.dao.save_stats)

        remote = fetched.value
        if remote is None:
            logger.info("No remote stats row for %s; creating it from local", self.user_id)
            return self._push(local, self.dao.upsert_stats)

        if not local.differs_from(remote):
            logger.debug("Local and remote stats identical; nothing to write")
            return Ok(local)

        if remote.updated_at > local.updated_at:
            logger.info("Remote stats newer (%s > %s); updating local", remote.updated_at, local.updated_at)
            self.local.replace_all([remote])
            try:
                self.local.save()
            except SyncError as e:
                logger.error("Could not persist remote stats locally: %s", e)
            return Ok(remote)

        if local.updated_at == remote.updated_at:
            logger.info("Equal timestamps with different values; local copy wins")
        else:
            logger.info("Local stats newer; pushing to server")
        return self._push(local, self.dao.save_stats)

    def _push(self, local: PlayerStats, write: Callable[[PlayerStats], Result[None]]) -> Result[PlayerStats]:
        # Local stays authoritative even if the push fails; a later sync retries.
        pushed = write(local)
        if not pushed.ok:
            logger.warning("Pushing stats for %s failed: %s", self.user_id, pushed.message)
        return Ok(local)
