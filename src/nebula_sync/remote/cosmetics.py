from __future__ import annotations

import logging
from typing import Callable, List

from ..errors import NotFound, SyncError
from ..models import CosmeticItem
from ..result import Err, Ok, Result
from .client import RestClient

logger = logging.getLogger(__name__)

TABLE = "rest/v1/cosmetic_items"


class CosmeticsDAO:
    """Read-only queries on the cosmetic catalog."""

    def __init__(self, client: RestClient, token_provider: Callable[[], str]) -> None:
        self.client = client
        self.token_provider = token_provider

    def get_cosmetic(self, name: str) -> Result[CosmeticItem]:
        try:
            resp = self.client.request(
                "GET",
                TABLE,
                token=self.token_provider(),
                params={"name": f"eq.{name}", "select": "*"},
            )
            items = self.client.decode(resp, List[CosmeticItem])
        except SyncError as e:
            logger.warning("get_cosmetic %s failed: %s", name, e)
            return Err(e)
        if not items:
            return Err(NotFound(f"Cosmetic item not found: {name}"))
        return Ok(items[0])

    def get_all_cosmetics(self) -> Result[List[CosmeticItem]]:
        try:
            resp = self.client.request(
                "GET", TABLE, token=self.token_provider(), params={"select": "*"}
            )
            items = self.client.decode(resp, List[CosmeticItem])
        except SyncError as e:
            logger.warning("get_all_cosmetics failed: %s", e)
            return Err(e)
        return Ok(items)
