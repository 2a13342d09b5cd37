from __future__ import annotations

import logging
from typing import List

from ..errors import NotFound, SyncError
from ..models import CosmeticItem
from ..paths import AppPaths
from ..reachability import Reachability
from ..remote.cosmetics import CosmeticsDAO
from ..result import Err, Ok, Result
from ..storage.table import TableStore

logger = logging.getLogger(__name__)


class CosmeticsRepository:
    """Catalog cache (``cosmetics.json``) so prices are known offline."""

    def __init__(self, dao: CosmeticsDAO, paths: AppPaths, reachability: Reachability) -> None:
        self.dao = dao
        self.reachability = reachability
        self.local: TableStore[CosmeticItem] = TableStore(paths.cosmetics(), CosmeticItem)

    def refresh_catalog(self) -> Result[List[CosmeticItem]]:
        if self.reachability.is_online():
            fetched = self.dao.get_all_cosmetics()
            if fetched.ok:
                self.local.replace_all(fetched.value)
                try:
                    self.local.save()
                except SyncError as e:
                    logger.warning("Could not cache cosmetics catalog: %s", e)
                return Ok(list(fetched.value))
            logger.warning("Catalog fetch failed, using cache: %s", fetched.message)
        try:
            return Ok(list(self.local.load()))
        except SyncError as e:
            return Err(e)

    def price_of(self, name: str) -> Result[int]:
        if self.reachability.is_online():
            fetched = self.dao.get_cosmetic(name)
            if fetched.ok:
                self._cache_item(fetched.value)
                return Ok(fetched.value.price_coins)
            logger.warning("Price lookup for %s failed, using cache: %s", name, fetched.message)
        try:
            self.local.load()
        except SyncError as e:
            return Err(e)
        for item in self.local.all():
            if item.name == name:
                return Ok(item.price_coins)
        return Err(NotFound(f"Cosmetic item not cached: {name}"))

    def _cache_item(self, item: CosmeticItem) -> None:
        try:
            self.local.load()
        except NotFound:
            pass
        except SyncError as e:
            logger.warning("Cosmetics cache unreadable, rebuilding: %s", e)
            self.local.clear()
        self.local.remove_where(lambda c: c.name == item.name)
        self.local.add(item)
        try:
            self.local.save()
        except SyncError as e:
            logger.warning("Could not cache cosmetic %s: %s", item.name, e)
