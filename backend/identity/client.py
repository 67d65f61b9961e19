"""Client-side identity state: one wallet session and what the dashboard shows.

PlayerClient owns the WalletSession, triggers a sync on every successful
connect, and keeps the latest PlayerDetails together with the last
user-facing error. Sagas are never cancelled by a disconnect; they run to
completion and their results are dropped if the session has moved on.
"""

from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING, Any

import httpx
import structlog

from chain.rpc_gateway import RpcContractGateway
from identity.classifier import present
from identity.errors import IdentityError, WalletError
from identity.locks import AddressLocks
from identity.rename import UsernameUpdateCoordinator
from identity.sync import IdentitySyncCoordinator
from shared.db import Database, SqliteIdentityStore
from shared.rest import RestIdentityStore
from wallet.session import WalletSession

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from identity.classifier import ErrorDisplay
    from identity.models import PlayerDetails
    from identity.ranking import LeaderboardRanking
    from identity.settings import IdentitySettings
    from shared.dal.identity_store import IdentityStore
    from wallet.session import WalletConnector

logger = structlog.get_logger()


class PlayerClient:
    """Connected-wallet state holder for a single client process."""

    def __init__(
        self,
        connector: WalletConnector,
        sync_coordinator: IdentitySyncCoordinator,
        rename_coordinator: UsernameUpdateCoordinator,
        *,
        default_provider: Any = None,  # noqa: ANN401
    ) -> None:
        self._sync = sync_coordinator
        self._rename = rename_coordinator
        self.session = WalletSession(connector, default_provider=default_provider, on_connect=self._handle_connected)
        self.player_details: PlayerDetails | None = None
        self.error: ErrorDisplay | None = None
        self.warning: ErrorDisplay | None = None
        self.loading = False
        self.update_loading = False

    async def toggle_connection(self) -> None:
        """Connect the wallet, or disconnect it when already connected.

        Failures are stored in `error` rather than raised.
        """
        connecting = not self.session.connected
        self.loading = connecting
        self.error = None
        try:
            await self.session.connect()
        except WalletError as exc:
            self.error = present(exc)
            logger.warning("wallet connection failed", error=str(exc), kind=self.error.kind)
        finally:
            self.loading = False

        if not self.session.connected:
            self.player_details = None
            self.warning = None

    async def update_username(self, new_username: str) -> PlayerDetails | None:
        """Rename the connected player. Returns the new details, or None on failure."""
        epoch = self.session.epoch
        self.update_loading = True
        self.error = None
        try:
            details = await self._rename.rename(self.session, new_username)
        except IdentityError as exc:
            if self.session.epoch == epoch:
                self.error = present(exc)
            logger.warning("username update failed", error=str(exc), kind=exc.kind)
            return None
        finally:
            self.update_loading = False

        if self.session.epoch != epoch:
            logger.info("discarding rename result for superseded session", wallet_address=details.wallet_address)
            return None
        self.player_details = details
        return details

    async def _handle_connected(self, session: WalletSession) -> None:
        epoch = session.epoch
        try:
            result = await self._sync.sync(session)
        except IdentityError as exc:
            logger.warning("identity sync failed", error=str(exc), kind=exc.kind)
            if session.epoch == epoch:
                self.error = present(exc)
                self.player_details = None
            return

        if session.epoch != epoch:
            logger.info("discarding sync result for superseded session", wallet_address=result.player.wallet_address)
            return
        self.player_details = result.player
        self.warning = present(result.warning) if result.warning is not None else None


@contextlib.asynccontextmanager
async def open_player_client(
    settings: IdentitySettings,
    connector: WalletConnector,
    *,
    ranking: LeaderboardRanking | None = None,
    default_provider: Any = None,  # noqa: ANN401
) -> AsyncIterator[PlayerClient]:
    """Build a PlayerClient from settings and close its resources on exit."""
    async with contextlib.AsyncExitStack() as stack:
        store = await open_store(settings, stack)
        rpc_client = await stack.enter_async_context(httpx.AsyncClient(timeout=settings.request_timeout_seconds))
        gateway = RpcContractGateway(
            rpc_client,
            settings.rpc_url,
            settings.contract_address,
            poll_interval_seconds=settings.confirmation_poll_interval_seconds,
        )
        locks = AddressLocks()
        sync_coordinator = IdentitySyncCoordinator(
            store,
            gateway,
            locks=locks,
            ranking=ranking,
            confirmation_timeout_seconds=settings.confirmation_timeout_seconds,
        )
        rename_coordinator = UsernameUpdateCoordinator(
            store,
            gateway,
            locks=locks,
            ranking=ranking,
            confirmation_timeout_seconds=settings.confirmation_timeout_seconds,
        )
        yield PlayerClient(connector, sync_coordinator, rename_coordinator, default_provider=default_provider)


async def open_store(settings: IdentitySettings, stack: contextlib.AsyncExitStack) -> IdentityStore:
    """Open the configured identity store, registering its cleanup on `stack`."""
    if settings.store_backend == "rest":
        headers = {}
        if settings.backend_api_key:
            headers = {"apikey": settings.backend_api_key, "Authorization": f"Bearer {settings.backend_api_key}"}
        client = await stack.enter_async_context(
            httpx.AsyncClient(base_url=settings.backend_url, headers=headers, timeout=settings.request_timeout_seconds),
        )
        return RestIdentityStore(client)

    db = Database(settings.database_path)
    db.connect()
    stack.callback(db.close)
    return SqliteIdentityStore(db)
