"""Abstract interface for identity record persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from shared.dal.models import IdentityRecord, IdentityUpdate


class IdentityStore(ABC):
    """Abstract interface for identity persistence, keyed by wallet address.

    Implementations raise StoreFailure(CONNECTIVITY) for storage problems,
    StoreFailure(RECORD_MISSING) when updating or deleting an unknown
    address, and DuplicateIdentityError when creating a duplicate.
    """

    @abstractmethod
    async def get_identity(self, wallet_address: str) -> IdentityRecord | None: ...

    @abstractmethod
    async def create_identity(self, record: IdentityRecord) -> IdentityRecord: ...

    @abstractmethod
    async def update_identity(self, wallet_address: str, changes: IdentityUpdate) -> IdentityRecord: ...

    @abstractmethod
    async def delete_identity(self, wallet_address: str) -> None: ...
