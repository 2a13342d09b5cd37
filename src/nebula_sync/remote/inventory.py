from __future__ import annotations

import logging
from datetime import datetime
from typing import List

from pydantic import BaseModel

from ..errors import SyncError
from ..logging_config import mask_token
from ..models import NEVER, InventoryItem, as_utc
from ..result import Err, Ok, Result
from .client import PREFER_MINIMAL, RestClient

logger = logging.getLogger(__name__)

TABLE = "rest/v1/inventory"


class _AcquiredAt(BaseModel):
    acquired_at: datetime


class InventoryDAO:
    def __init__(self, client: RestClient) -> None:
        self.client = client

    def get_inventory(self, user_id: str, token: str) -> Result[List[InventoryItem]]:
        logger.debug("get_inventory user=%s token=%s", user_id, mask_token(token))
        try:
            resp = self.client.request(
                "GET", TABLE, token=token, params={"user_id": f"eq.{user_id}", "select": "*"}
            )
            items = self.client.decode(resp, List[InventoryItem])
        except SyncError as e:
            logger.warning("get_inventory failed: %s", e)
            return Err(e)
        logger.debug("get_inventory -> %d items", len(items))
        return Ok(items)

    def get_last_inventory_timestamp(self, user_id: str, token: str) -> Result[datetime]:
        """Newest ``acquired_at`` on the server, or ``NEVER`` for an empty inventory."""
        try:
            resp = self.client.request(
                "GET",
                TABLE,
                token=token,
                params={
                    "select": "acquired_at",
                    "user_id": f"eq.{user_id}",
                    "order": "acquired_at.desc",
                    "limit": 1,
                },
            )
            rows = self.client.decode(resp, List[_AcquiredAt])
        except SyncError as e:
            logger.warning("get_last_inventory_timestamp failed: %s", e)
            return Err(e)
        return Ok(as_utc(rows[0].acquired_at) if rows else NEVER)

    def upload_item(self, item: InventoryItem, token: str) -> Result[None]:
        try:
            self.client.request(
                "POST",
                TABLE,
                token=token,
                json=item.model_dump(mode="json"),
                prefer=PREFER_MINIMAL,
            )
        except SyncError as e:
            logger.warning("upload_item %s failed: %s", item.item_name, e)
            return Err(e)
        logger.debug("Uploaded %s for %s", item.item_name, item.user_id)
        return Ok(None)
