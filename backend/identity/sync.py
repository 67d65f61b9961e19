"""Identity synchronization: the New/Existing decision and the registration saga."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from identity.confirmation import submit_and_confirm
from identity.errors import (
    ContractCallFailure,
    ContractOperation,
    DuplicateIdentityError,
    StoreFailure,
    StoreFailureReason,
)
from identity.locks import AddressLocks
from identity.models import IdentityStatus, PlayerDetails, SyncResult
from identity.ranking import UnrankedLeaderboard
from identity.saga import RegistrationSaga, SagaState
from identity.usernames import default_username
from shared.dal.models import IdentityRecord

if TYPE_CHECKING:
    from collections.abc import Callable

    from chain.gateway import ContractGateway, SigningAccount
    from identity.ranking import LeaderboardRanking
    from shared.dal.identity_store import IdentityStore
    from wallet.session import WalletSession

logger = structlog.get_logger()


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


class IdentitySyncCoordinator:
    """Bring a freshly connected wallet's off-chain and on-chain identity in line.

    Existing wallets are projected straight from their record. New wallets
    get a record first, then an on-chain registration that must confirm;
    if it does not, the record is deleted again and the failure is raised.
    A store that cannot be read yields degraded details instead of an error.
    Syncs for the same address never overlap.
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

    async def sync(self, session: WalletSession) -> SyncResult:
        address, account = session.require_connected()
        async with self._locks.hold(address):
            return await self._sync_locked(address, account)

    async def _sync_locked(self, address: str, account: SigningAccount) -> SyncResult:
        try:
            record = await self._store.get_identity(address)
        except StoreFailure as exc:
            logger.warning("identity store unavailable, using fallback details", wallet_address=address, error=str(exc))
            return SyncResult(player=PlayerDetails.fallback(address), status=IdentityStatus.DEGRADED, warning=exc)

        if record is not None:
            logger.info("existing identity, skipping contract registration", wallet_address=address)
            return SyncResult(player=await self._project(record), status=IdentityStatus.EXISTING)

        now = self._clock()
        record = IdentityRecord(
            wallet_address=address,
            username=default_username(address),
            created_at=now,
            updated_at=now,
        )
        try:
            record = await self._store.create_identity(record)
        except DuplicateIdentityError:
            # Another client created the record between our read and insert.
            existing = await self._store.get_identity(address)
            if existing is None:
                raise StoreFailure(reason=StoreFailureReason.RECORD_MISSING, address=address) from None
            logger.info("identity created concurrently elsewhere, treating as existing", wallet_address=address)
            return SyncResult(player=await self._project(existing), status=IdentityStatus.EXISTING)

        logger.info("new identity created", wallet_address=address, username=record.username)
        await self._register(record, account)
        return SyncResult(player=await self._project(record), status=IdentityStatus.NEW)

    async def _register(self, record: IdentityRecord, account: SigningAccount) -> None:
        """Register the record on-chain, deleting it again if registration does not confirm."""
        saga = RegistrationSaga(record.wallet_address)
        saga.advance(SagaState.REGISTERING)
        try:
            receipt = await submit_and_confirm(
                self._gateway,
                lambda: self._gateway.register(account, record.wallet_address, record.username),
                operation=ContractOperation.REGISTER,
                timeout_seconds=self._confirmation_timeout,
            )
        except ContractCallFailure as exc:
            saga.transaction_hash = exc.transaction_hash
            await self._compensate(saga, exc)
            raise
        saga.transaction_hash = receipt.transaction_hash
        saga.advance(SagaState.CONFIRMED)

    async def _compensate(self, saga: RegistrationSaga, failure: ContractCallFailure) -> None:
        """Delete the record created for a failed registration.

        A failing delete is logged and left for the caller's original
        ContractCallFailure to report.
        """
        saga.advance(SagaState.REGISTRATION_FAILED)
        logger.warning(
            "contract registration failed, deleting identity record",
            wallet_address=saga.wallet_address,
            reason=failure.reason,
            error=failure.detail,
        )
        try:
            await self._store.delete_identity(saga.wallet_address)
        except Exception:
            saga.advance(SagaState.COMPENSATION_FAILED)
            logger.exception("compensating delete failed", wallet_address=saga.wallet_address)
            return
        saga.advance(SagaState.COMPENSATED)

    async def _project(self, record: IdentityRecord) -> PlayerDetails:
        position = await self._ranking.position_of(record)
        return PlayerDetails.from_record(record, leaderboard_position=position)
