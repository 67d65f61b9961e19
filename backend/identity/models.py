"""Views and results produced by the identity coordinators."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from pydantic import BaseModel

from identity.usernames import default_username

if TYPE_CHECKING:
    from identity.errors import StoreFailure
    from shared.dal.models import IdentityRecord


class PlayerDetails(BaseModel, frozen=True):
    """Dashboard projection of an identity record. Rebuilt on every sync or rename."""

    username: str
    wallet_address: str
    score: str  # highest score, rendered for display
    leaderboard_position: int = 0

    @classmethod
    def from_record(cls, record: IdentityRecord, leaderboard_position: int = 0) -> PlayerDetails:
        return cls(
            username=record.username,
            wallet_address=record.wallet_address,
            score=str(record.highest_score),
            leaderboard_position=leaderboard_position,
        )

    @classmethod
    def fallback(cls, wallet_address: str) -> PlayerDetails:
        """Details built from the address alone, for when the store cannot be read."""
        return cls(
            username=default_username(wallet_address),
            wallet_address=wallet_address,
            score="0",
            leaderboard_position=0,
        )


class IdentityStatus(StrEnum):
    NEW = "new"
    EXISTING = "existing"
    DEGRADED = "degraded"


@dataclass(frozen=True)
class SyncResult:
    player: PlayerDetails
    status: IdentityStatus
    warning: StoreFailure | None = None
