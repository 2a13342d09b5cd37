from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from ..errors import NotFound, SyncError
from ..models import NEVER, InventoryItem, utcnow
from ..paths import AppPaths
from ..reachability import Reachability
from ..remote.inventory import InventoryDAO
from ..result import Err, Ok, Result
from ..storage.table import TableStore

logger = logging.getLogger(__name__)


def _first_by_name(items: Iterable[InventoryItem]) -> Dict[str, InventoryItem]:
    """One row per item name; a user owns each cosmetic at most once."""
    by_name: Dict[str, InventoryItem] = {}
    for item in items:
        by_name.setdefault(item.item_name, item)
    return by_name


class InventoryRepository:
    """Owned cosmetics of one user, cached in ``{user}-inventory.json``.

    ``sync`` compares only the newest ``acquired_at`` on each side.
    ``merge_inventory_if_needed`` is a separate, name-based set union.
    """

    def __init__(
        self,
        user_id: str,
        dao: InventoryDAO,
        paths: AppPaths,
        reachability: Reachability,
        persist_remote_wins: bool = True,
    ) -> None:
        self.user_id = user_id
        self.dao = dao
        self.reachability = reachability
        self.persist_remote_wins = persist_remote_wins
        self.local: TableStore[InventoryItem] = TableStore(paths.inventory(user_id), InventoryItem)

    def _load_quietly(self) -> None:
        try:
            self.local.load()
        except NotFound:
            logger.debug("No local inventory for %s yet", self.user_id)
        except SyncError as e:
            logger.warning("Could not load local inventory: %s", e)

    def latest_local_time(self) -> datetime:
        rows = self.local.all()
        return max((i.acquired_at for i in rows), default=NEVER)

    def sync(self, token: str) -> Result[List[InventoryItem]]:
        self._load_quietly()
        local_time = self.latest_local_time()

        stamp = self.dao.get_last_inventory_timestamp(self.user_id, token)
        if not stamp.ok:
            return Err(stamp.error)
        remote_time = stamp.value
        logger.debug("Inventory timestamps local=%s remote=%s", local_time, remote_time)

        if local_time > remote_time:
            newer = [i for i in self.local.all() if i.acquired_at > remote_time]
            logger.info("Uploading %d inventory items", len(newer))
            for item in newer:
                uploaded = self.dao.upload_item(item, token)
                if not uploaded.ok:
                    logger.warning("Upload of %s failed: %s", item.item_name, uploaded.message)
            return Ok(list(self.local.all()))

        if remote_time > local_time:
            fetched = self.dao.get_inventory(self.user_id, token)
            if not fetched.ok:
                return Err(fetched.error)
            items = fetched.value
            if self.persist_remote_wins:
                self.local.replace_all(items)
                try:
                    self.local.save()
                except SyncError as e:
                    logger.error("Could not persist remote inventory locally: %s", e)
            return Ok(list(items))

        logger.debug("Inventory already in sync")
        return Ok(list(self.local.all()))

    def get_local_or_sync(self, token: str) -> Result[List[InventoryItem]]:
        if self.reachability.is_online():
            return self.sync(token)
        try:
            self.local.load()
        except SyncError as e:
            return Err(e)
        return Ok(list(self.local.all()))

    def merge_inventory_if_needed(self, token: str) -> Result[Optional[List[InventoryItem]]]:
        """Union local and remote item sets by name.

        Items only present locally are uploaded, items only present remotely
        are appended to the local table. Offline this does nothing and returns
        ``Ok(None)``.
        """
        if not self.reachability.is_online():
            logger.info("Offline; skipping inventory merge")
            return Ok(None)

        self._load_quietly()
        fetched = self.dao.get_inventory(self.user_id, token)
        if not fetched.ok:
            return Err(fetched.error)
        remote_items = fetched.value

        local_by_name = _first_by_name(self.local.all())
        remote_by_name = _first_by_name(remote_items)
        only_local = [i for name, i in local_by_name.items() if name not in remote_by_name]
        only_remote = [i for name, i in remote_by_name.items() if name not in local_by_name]
        logger.info("Inventory merge: %d only local, %d only remote", len(only_local), len(only_remote))

        for item in only_local:
            uploaded = self.dao.upload_item(item, token)
            if not uploaded.ok:
                logger.warning("Upload of %s failed: %s", item.item_name, uploaded.message)

        if only_remote:
            for item in only_remote:
                self.local.add(item)
            try:
                self.local.save()
            except SyncError as e:
                logger.warning("Could not save merged inventory: %s", e)

        return Ok(list(self.local.all()))

    def record_purchase(self, item_name: str, acquired_at: Optional[datetime] = None) -> Result[InventoryItem]:
        """Append a newly acquired item to the local table and persist it."""
        try:
            self.local.load()
        except NotFound:
            pass
        except SyncError as e:
            return Err(e)
        item = InventoryItem(user_id=self.user_id, item_name=item_name, acquired_at=acquired_at or utcnow())
        self.local.add(item)
        try:
            self.local.save()
        except SyncError as e:
            return Err(e)
        return Ok(item)
