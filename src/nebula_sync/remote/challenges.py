from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Callable, List, Optional, Set

from pydantic import BaseModel

from ..errors import SyncError
from ..models import CompletedChallenge, DailyChallenge
from ..result import Err, Ok, Result
from .client import PREFER_MINIMAL, RestClient

logger = logging.getLogger(__name__)

DAILY_TABLE = "rest/v1/daily_challenges"
COMPLETED_TABLE = "rest/v1/completed_challenges"

# PostgREST answers 409 when the (user, challenge) row already exists.
HTTP_CONFLICT = 409


class _ChallengeId(BaseModel):
    challenge_id: int


class DailyChallengesDAO:
    def __init__(self, client: RestClient) -> None:
        self.client = client

    def get_active_challenges(self, today: Optional[date] = None) -> Result[List[DailyChallenge]]:
        """All challenges dated on or before ``today`` (UTC date by default)."""
        today = today or datetime.now(timezone.utc).date()
        try:
            resp = self.client.request(
                "GET",
                DAILY_TABLE,
                params={"select": "*", "challenge_date": f"lte.{today.isoformat()}"},
            )
            challenges = self.client.decode(resp, Optional[List[DailyChallenge]])
        except SyncError as e:
            logger.warning("get_active_challenges failed: %s", e)
            return Err(e)
        logger.debug("Active challenges (<= %s): %d", today, len(challenges or []))
        return Ok(challenges or [])


class CompletedChallengesDAO:
    def __init__(self, client: RestClient, token_provider: Callable[[], str]) -> None:
        self.client = client
        self.token_provider = token_provider

    def get_completed(self, user_id: str) -> Result[Set[int]]:
        try:
            resp = self.client.request(
                "GET",
                COMPLETED_TABLE,
                token=self.token_provider(),
                params={"select": "challenge_id", "user_id": f"eq.{user_id}"},
            )
            rows = self.client.decode(resp, List[_ChallengeId])
        except SyncError as e:
            logger.warning("get_completed failed: %s", e)
            return Err(e)
        return Ok({r.challenge_id for r in rows})

    def insert_completed(self, challenge_id: int, user_id: str) -> Result[None]:
        """Record a completion; inserting an existing pair counts as success."""
        row = CompletedChallenge(user_id=user_id, challenge_id=challenge_id, reward_claimed=True)
        try:
            resp = self.client.request(
                "POST",
                COMPLETED_TABLE,
                token=self.token_provider(),
                json=row.model_dump(mode="json", exclude_none=True),
                prefer=PREFER_MINIMAL,
                accept_statuses=(HTTP_CONFLICT,),
            )
        except SyncError as e:
            logger.warning("insert_completed %s failed: %s", challenge_id, e)
            return Err(e)
        if resp.status_code == HTTP_CONFLICT:
            logger.debug("Challenge %s already recorded for %s", challenge_id, user_id)
        return Ok(None)
