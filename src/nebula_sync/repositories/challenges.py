from __future__ import annotations

import logging
from importlib import resources
from typing import List, Set

from ..errors import NotFound, SyncError
from ..models import DailyChallenge
from ..paths import AppPaths
from ..reachability import Reachability
from ..remote.challenges import CompletedChallengesDAO, DailyChallengesDAO
from ..result import Err, Ok, Result
from ..storage.fs import atomic_write_text
from ..storage.table import TableStore

logger = logging.getLogger(__name__)

TEMPLATE_RESOURCE = "daily_challenges.json"


def load_template() -> str:
    return resources.files("nebula_sync.data").joinpath(TEMPLATE_RESOURCE).read_text(encoding="utf-8")


class ChallengeRepository:
    """Daily challenges and the user's completions, with offline caches.

    ``daily_challenges.json`` (shared) caches the active list and is seeded
    from the bundled template the first time it is needed.
    ``{user}-completed_challenges.json`` remembers every id the user completed
    on this device, confirmed or not, so rewards are never paid twice when the
    server set cannot be read. ``{user}-pending_completions.json`` holds the
    ids whose remote insert has not been confirmed yet;
    ``push_offline_completed`` flushes it.
    """

    def __init__(
        self,
        user_id: str,
        daily_dao: DailyChallengesDAO,
        completed_dao: CompletedChallengesDAO,
        paths: AppPaths,
        reachability: Reachability,
    ) -> None:
        self.user_id = user_id
        self.daily_dao = daily_dao
        self.completed_dao = completed_dao
        self.reachability = reachability
        self.daily_cache: TableStore[DailyChallenge] = TableStore(paths.daily_challenges(), DailyChallenge)
        self.completed_cache: TableStore[int] = TableStore(paths.completed_challenges(user_id), int)
        self.pending_queue: TableStore[int] = TableStore(paths.pending_completions(user_id), int)

    # Active challenges

    def active_challenges(self) -> Result[List[DailyChallenge]]:
        """Remote active list, cached; falls back to the cache when remote yields none."""
        remote_error = None
        if self.reachability.is_online():
            fetched = self.daily_dao.get_active_challenges()
            if fetched.ok and fetched.value:
                self.daily_cache.replace_all(fetched.value)
                self._save_quietly(self.daily_cache)
                return Ok(list(fetched.value))
            if not fetched.ok:
                remote_error = fetched.error

        logger.info("Falling back to cached challenges")
        try:
            return Ok(list(self._load_daily_cache()))
        except SyncError as e:
            logger.warning("Challenge cache unavailable: %s", e)
            if remote_error is not None:
                return Err(remote_error)
            return Ok([])

    def _load_daily_cache(self) -> List[DailyChallenge]:
        path = self.daily_cache.path
        if not path.exists() or path.stat().st_size == 0:
            try:
                atomic_write_text(path, load_template())
                logger.info("Seeded %s from bundled template", path.name)
            except OSError as e:
                logger.warning("Could not seed challenge cache: %s", e)
        return self.daily_cache.load()

    # Completions

    @staticmethod
    def _load_ids(table: TableStore) -> Set[int]:
        try:
            return set(table.load())
        except NotFound:
            return set()
        except SyncError as e:
            logger.warning("Could not read %s: %s", table.path.name, e)
            return set(table.all())

    def completed_ids(self) -> Result[Set[int]]:
        """Ids completed by the user: remote set plus every locally known completion."""
        local = self._load_ids(self.completed_cache) | self._load_ids(self.pending_queue)
        if self.reachability.is_online():
            fetched = self.completed_dao.get_completed(self.user_id)
            if fetched.ok:
                return Ok(fetched.value | local)
            logger.warning("Falling back to cached completions: %s", fetched.message)
        return Ok(local)

    def mark_completed(self, challenge_id: int) -> Result[bool]:
        """Record a completion remotely, or queue it locally if that fails.

        ``Ok(True)`` means the server has it, ``Ok(False)`` that it was queued.
        Either way the id is added to the completed cache and the challenge is
        dropped from the cached active list.
        """
        recorded = False
        if self.reachability.is_online():
            inserted = self.completed_dao.insert_completed(challenge_id, self.user_id)
            recorded = inserted.ok
            if not inserted.ok:
                logger.warning("Insert of completion %s failed: %s", challenge_id, inserted.message)

        self._drop_from_daily_cache(challenge_id)
        tables = [self.completed_cache] if recorded else [self.completed_cache, self.pending_queue]
        for table in tables:
            self._load_ids(table)
            table.add_if_absent(challenge_id)
            try:
                table.save()
            except SyncError as e:
                return Err(e)
        if not recorded:
            logger.info("Queued completion %s locally", challenge_id)
        return Ok(recorded)

    def _drop_from_daily_cache(self, challenge_id: int) -> None:
        try:
            self.daily_cache.load()
        except SyncError:
            return
        if self.daily_cache.remove_where(lambda c: c.id == challenge_id):
            self._save_quietly(self.daily_cache)
            logger.debug("Removed challenge %s from cache", challenge_id)

    def pending_missions(self) -> Result[List[DailyChallenge]]:
        """Active challenges the user has not completed yet (menu listing)."""
        active = self.active_challenges()
        if not active.ok:
            return active
        done = self.completed_ids().unwrap()
        pending = sorted((c for c in active.value if c.id not in done), key=lambda c: c.id)
        self.daily_cache.replace_all(pending)
        self._save_quietly(self.daily_cache)
        return Ok(pending)

    def push_offline_completed(self) -> Result[int]:
        """Send queued completions to the server; returns how many were accepted.

        Each id is inserted on its own; failures stay queued for the next pass.
        """
        if not self.reachability.is_online():
            return Ok(0)
        try:
            queued = list(self.pending_queue.load())
        except NotFound:
            return Ok(0)
        except SyncError as e:
            return Err(e)

        failed = []
        for challenge_id in queued:
            inserted = self.completed_dao.insert_completed(challenge_id, self.user_id)
            if not inserted.ok:
                logger.warning("Flush of completion %s failed: %s", challenge_id, inserted.message)
                failed.append(challenge_id)

        if failed:
            self.pending_queue.replace_all(failed)
            try:
                self.pending_queue.save()
            except SyncError as e:
                return Err(e)
        else:
            try:
                self.pending_queue.path.unlink()
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.warning("Could not remove %s: %s", self.pending_queue.path, e)
            self.pending_queue.clear()
        return Ok(len(queued) - len(failed))

    @staticmethod
    def _save_quietly(table: TableStore) -> None:
        try:
            table.save()
        except SyncError as e:
            logger.warning("Could not write %s: %s", table.path.name, e)
