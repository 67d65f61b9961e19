"""Username updates, anchored on-chain only the first time."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from identity.confirmation import submit_and_confirm
from identity.errors import ContractOperation, StoreFailure, StoreFailureReason
from identity.locks import AddressLocks
from identity.models import PlayerDetails
from identity.ranking import UnrankedLeaderboard
from identity.sync import utc_now
from identity.usernames import validate_username
from shared.dal.models import IdentityUpdate

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from chain.gateway import ContractGateway
    from identity.ranking import LeaderboardRanking
    from shared.dal.identity_store import IdentityStore
    from wallet.session import WalletSession

logger = structlog.get_logger()


class UsernameUpdateCoordinator:
    """Rename a synchronized identity.

    While the record's on_chain_confirmed flag is false the new name is first
    sent to the contract and must confirm; a failure there aborts before the
    store is touched and nothing is rolled back. Once the flag is set, renames
    only update the store, so the contract call happens at most once per
    wallet.
    """

    def __init__(
        self,
        store: IdentityStore,
        gateway: ContractGateway,
        *,
        locks: AddressLocks | None = None,
        ranking: LeaderboardRanking | None = None,
        confirmation_timeout_seconds: float | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._gateway = gateway
        self._locks = locks or AddressLocks()
        self._ranking = ranking or UnrankedLeaderboard()
        self._confirmation_timeout = confirmation_timeout_seconds
        self._clock = clock

    async def rename(self, session: WalletSession, new_username: str) -> PlayerDetails:
        validate_username(new_username)
        address, account = session.require_connected()

        async with self._locks.hold(address):
            record = await self._store.get_identity(address)
            if record is None:
                raise StoreFailure(reason=StoreFailureReason.RECORD_MISSING, address=address)

            anchor_on_chain = not record.on_chain_confirmed
            if anchor_on_chain:
                receipt = await submit_and_confirm(
                    self._gateway,
                    lambda: self._gateway.update_username(account, new_username),
                    operation=ContractOperation.UPDATE_USERNAME,
                    timeout_seconds=self._confirmation_timeout,
                )
                logger.info("username anchored on-chain", wallet_address=address, transaction_hash=receipt.transaction_hash)
            else:
                logger.info("username already anchored, skipping contract call", wallet_address=address)

            changes = IdentityUpdate(
                updated_at=self._clock(),
                username=new_username,
                on_chain_confirmed=True if anchor_on_chain else None,
            )
            updated = await self._store.update_identity(address, changes)

        logger.info("username updated", wallet_address=address, username=updated.username)
        position = await self._ranking.position_of(updated)
        return PlayerDetails.from_record(updated, leaderboard_position=position)
