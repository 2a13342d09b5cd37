from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, List, Optional

from pydantic import BaseModel

from ..errors import HttpStatusError, SyncError
from ..logging_config import mask_token
from ..models import NEVER, PlayerStats, as_utc
from ..result import Err, Ok, Result
from .client import PREFER_MINIMAL, PREFER_UPSERT, RestClient

logger = logging.getLogger(__name__)

TABLE = "rest/v1/player_stats"


class _UpdatedAt(BaseModel):
    updated_at: datetime


class PlayerStatsDAO:
    """REST access to the ``player_stats`` table.

    ``token_provider`` returns the currently cached access token; it is used
    by the write calls, which are issued after the caller already holds a
    session.
    """

    def __init__(self, client: RestClient, token_provider: Callable[[], str]) -> None:
        self.client = client
        self.token_provider = token_provider

    def get_stats(self, token: str) -> Result[Optional[PlayerStats]]:
        """Fetch the caller's row; ``Ok(None)`` when the user has no row yet."""
        if not token:
            return Err(SyncError("Empty access token"))
        logger.debug("get_stats token=%s", mask_token(token))
        try:
            resp = self.client.request(
                "GET", TABLE, token=token, params={"select": "*", "limit": 1}
            )
            rows = self.client.decode(resp, List[PlayerStats])
        except HttpStatusError as e:
            if e.status == 401:
                return Err(HttpStatusError(401, e.body, "Token expired or missing permissions (401)"))
            return Err(e)
        except SyncError as e:
            logger.warning("get_stats failed: %s", e)
            return Err(e)
        return Ok(rows[0] if rows else None)

    def save_stats(self, dto: PlayerStats) -> Result[None]:
        """PATCH the mutable counters of an existing row."""
        try:
            self.client.request(
                "PATCH",
                TABLE,
                token=self.token_provider(),
                params={"user_id": f"eq.{dto.user_id}"},
                json=dto.mutable_fields(),
                prefer=PREFER_MINIMAL,
            )
        except SyncError as e:
            logger.warning("save_stats for %s failed: %s", dto.user_id, e)
            return Err(e)
        return Ok(None)

    def upsert_stats(self, dto: PlayerStats) -> Result[None]:
        """Insert the row, merging into an existing one with the same user id."""
        try:
            self.client.request(
                "POST",
                TABLE,
                token=self.token_provider(),
                json=dto.model_dump(mode="json"),
                prefer=PREFER_UPSERT,
            )
        except SyncError as e:
            logger.warning("upsert_stats for %s failed: %s", dto.user_id, e)
            return Err(e)
        return Ok(None)

    def get_server_timestamp(self, token: str, user_id: str) -> Result[datetime]:
        """Only the row's ``updated_at``; ``NEVER`` when the row does not exist."""
        try:
            resp = self.client.request(
                "GET",
                TABLE,
                token=token,
                params={"select": "updated_at", "user_id": f"eq.{user_id}", "limit": 1},
            )
            rows = self.client.decode(resp, List[_UpdatedAt])
        except SyncError as e:
            logger.warning("get_server_timestamp failed: %s", e)
            return Err(e)
        return Ok(as_utc(rows[0].updated_at) if rows else NEVER)
