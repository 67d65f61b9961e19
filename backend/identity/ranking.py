"""Leaderboard position lookup used when projecting PlayerDetails."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from shared.dal.models import IdentityRecord


class LeaderboardRanking(Protocol):
    async def position_of(self, record: IdentityRecord) -> int: ...


class UnrankedLeaderboard:
    """Reports every player at position 0 (not ranked)."""

    async def position_of(self, record: IdentityRecord) -> int:  # noqa: ARG002
        return 0
