"""Per-address serialization for identity sagas."""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


class AddressLocks:
    """Hand out one asyncio.Lock per wallet address.

    Addresses are compared case-insensitively. A lock is dropped once its
    last holder or waiter releases it, so the table only holds addresses
    with a saga in flight.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}  # address -> holders + waiters

    @contextlib.asynccontextmanager
    async def hold(self, wallet_address: str) -> AsyncIterator[None]:
        key = wallet_address.lower()
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]
