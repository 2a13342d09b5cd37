from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

# Freshness sentinel for "no rows yet"; compares older than any real timestamp.
NEVER = datetime.min.replace(tzinfo=timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ChallengeType(str, Enum):
    WALK = "WALK"
    COINS = "COINS"


class Rarity(str, Enum):
    common = "common"
    rare = "rare"
    epic = "epic"
    legendary = "legendary"


# Fields compared during sync and sent by the PATCH endpoint.
MUTABLE_STAT_FIELDS = (
    "best_distance",
    "best_coins_earned",
    "total_sessions",
    "total_distance",
    "total_coins_collected",
    "total_coins_spent",
    "challenges_completed",
    "actual_skin",
)


class PlayerStats(BaseModel):
    """Per-user statistics aggregate; one row per user in any store."""

    user_id: str = Field(..., description="User identifier (UUID)")
    best_distance: int = Field(0, description="Longest distance in a single session")
    best_coins_earned: int = Field(0, description="Most coins earned in a single session")
    total_sessions: int = 0
    total_distance: int = 0
    total_coins_collected: int = 0
    total_coins_spent: int = 0
    challenges_completed: int = 0
    actual_skin: str = Field("default", description="Currently equipped cosmetic")
    updated_at: datetime = Field(default_factory=utcnow, description="Last-modified timestamp")

    @field_validator("updated_at")
    @classmethod
    def normalize_updated_at(cls, v: datetime) -> datetime:
        return as_utc(v)

    @field_validator("actual_skin", mode="before")
    @classmethod
    def skin_not_null(cls, v: Any) -> Any:
        return "default" if v is None else v

    @classmethod
    def zero(cls, user_id: str, skin: str = "default") -> "PlayerStats":
        return cls(user_id=user_id, actual_skin=skin, updated_at=utcnow())

    @property
    def coin_balance(self) -> int:
        return self.total_coins_collected - self.total_coins_spent

    def mutable_fields(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in MUTABLE_STAT_FIELDS}

    def differs_from(self, other: "PlayerStats") -> bool:
        return self.mutable_fields() != other.mutable_fields()


class InventoryItem(BaseModel):
    """Ownership record of a cosmetic; never mutated once created."""

    user_id: str
    item_name: str = Field(..., description="References CosmeticItem.name")
    acquired_at: datetime = Field(default_factory=utcnow)

    @field_validator("acquired_at")
    @classmethod
    def normalize_acquired_at(cls, v: datetime) -> datetime:
        return as_utc(v)


class DailyChallenge(BaseModel):
    id: int
    challenge_date: date
    description: str = ""
    reward_coins: int = 0
    amount_needed: int = 0
    challenge_type: ChallengeType

    def is_satisfied(self, distance: int, coins: int) -> bool:
        if self.challenge_type is ChallengeType.WALK:
            return distance >= self.amount_needed
        return coins >= self.amount_needed


class CompletedChallenge(BaseModel):
    user_id: str
    challenge_id: int
    completed_at: Optional[datetime] = None
    reward_claimed: bool = False


class CosmeticItem(BaseModel):
    name: str
    description: str = ""
    price_coins: int = 0
    rarity: Rarity = Rarity.common
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class LoginResult(BaseModel):
    """Token bundle returned by the auth endpoints."""

    access_token: str = ""
    refresh_token: str = ""
    expires_in: int = 0
