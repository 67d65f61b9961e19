"""Persistence models for the data access layer."""

from datetime import datetime

from pydantic import BaseModel, Field


class IdentityRecord(BaseModel, frozen=True):
    """Off-chain player identity, keyed by wallet address."""

    wallet_address: str = Field(min_length=1)
    username: str
    highest_score: int = Field(default=0, ge=0)
    total_accumulated_score: int = Field(default=0, ge=0)
    games_played: int = Field(default=0, ge=0)
    # set once the username has been anchored on-chain; gates further contract calls
    on_chain_confirmed: bool = False
    created_at: datetime
    updated_at: datetime


class IdentityUpdate(BaseModel, frozen=True):
    """Partial update applied to an IdentityRecord. None fields are left unchanged."""

    updated_at: datetime
    username: str | None = None
    on_chain_confirmed: bool | None = None

    def changed_fields(self) -> dict[str, object]:
        return self.model_dump(exclude_none=True)
