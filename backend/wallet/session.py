"""Wallet session: the single connected-wallet state of a client process.

Replaces scattered address/account/provider fields with one explicit object
that the coordinators receive by reference.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Protocol

import structlog

from identity.errors import ConnectionFailure, DisconnectFailure, WalletError, WalletUnavailable

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from chain.gateway import SigningAccount

logger = structlog.get_logger()

WALLET_NOT_DETECTED_MESSAGE = "No StarkNet wallet detected. Please install Argent X or Braavos."


class SessionState(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


@dataclass
class ConnectedWallet:
    """What the wallet extension hands back after the approval popup."""

    is_connected: bool
    selected_address: str | None
    account: SigningAccount | None
    provider: Any = None


class WalletConnector(Protocol):
    """Wallet extension bridge. The popup flow and transport live behind it."""

    def is_available(self) -> bool: ...

    async def connect(self) -> ConnectedWallet: ...

    async def disconnect(self) -> None: ...


class WalletSession:
    """Connected-wallet state with toggle connect semantics.

    State machine: DISCONNECTED -> CONNECTING -> CONNECTED -> DISCONNECTED.
    connect() while CONNECTED disconnects instead; connect() while
    CONNECTING is rejected. Every transition bumps `epoch`, so work started
    under one session can tell it has been superseded.
    """

    def __init__(
        self,
        connector: WalletConnector,
        *,
        default_provider: Any = None,  # noqa: ANN401
        on_connect: Callable[[WalletSession], Awaitable[None]] | None = None,
    ) -> None:
        self._connector = connector
        self._default_provider = default_provider
        self._on_connect = on_connect
        self.state = SessionState.DISCONNECTED
        self.address: str | None = None
        self.account: SigningAccount | None = None
        self.provider: Any = None
        self.epoch = 0

    @property
    def connected(self) -> bool:
        return self.state == SessionState.CONNECTED

    def require_connected(self) -> tuple[str, SigningAccount]:
        """Return (address, account) of the live session, or raise ConnectionFailure."""
        if not self.connected or self.address is None or self.account is None:
            raise ConnectionFailure("Wallet is not connected")
        return self.address, self.account

    async def connect(self) -> WalletSession:
        """Connect the wallet, or disconnect it if already connected.

        Raises WalletUnavailable when no wallet extension is installed,
        the connector's own WalletError subclasses as-is, and
        ConnectionFailure for anything else. The session is cleared on
        every failure. The on-connect listener runs once per success; if it
        raises, the session is cleared again and ConnectionFailure is raised,
        so a caller never sees CONNECTED after connect() has failed.
        """
        if self.state == SessionState.CONNECTED:
            await self.disconnect()
            return self
        if self.state == SessionState.CONNECTING:
            raise ConnectionFailure("Wallet connection already in progress")

        self.state = SessionState.CONNECTING
        try:
            if not self._connector.is_available():
                raise WalletUnavailable(WALLET_NOT_DETECTED_MESSAGE)
            wallet = await self._connector.connect()
        except WalletError:
            self._clear()
            raise
        except Exception as exc:
            self._clear()
            raise ConnectionFailure(str(exc) or "Failed to connect wallet") from exc

        if not (wallet and wallet.is_connected and wallet.account and wallet.selected_address):
            self._clear()
            raise ConnectionFailure("Failed to connect wallet")

        self.address = wallet.selected_address
        self.account = wallet.account
        self.provider = wallet.provider or self._default_provider
        self.state = SessionState.CONNECTED
        self.epoch += 1
        logger.info("wallet connected", wallet_address=self.address, epoch=self.epoch)

        if self._on_connect is not None:
            try:
                await self._on_connect(self)
            except Exception as exc:
                logger.exception("on-connect listener failed, session cleared", wallet_address=self.address)
                self._clear()
                raise ConnectionFailure("Failed to load player after connecting") from exc
        return self

    async def disconnect(self) -> None:
        """Disconnect and clear the session.

        Fields are cleared even when the upstream disconnect fails, so the
        session never claims to be connected after a user-initiated
        disconnect. The upstream failure is then raised as DisconnectFailure.
        """
        if self.state != SessionState.CONNECTED:
            return
        address = self.address
        try:
            await self._connector.disconnect()
        except Exception as exc:
            self._clear()
            logger.warning("wallet disconnect failed, session cleared", wallet_address=address, error=str(exc))
            raise DisconnectFailure("Failed to disconnect wallet") from exc
        self._clear()
        logger.info("wallet disconnected", wallet_address=address)

    def _clear(self) -> None:
        was_active = self.state != SessionState.DISCONNECTED
        self.state = SessionState.DISCONNECTED
        self.address = None
        self.account = None
        self.provider = None
        if was_active:
            self.epoch += 1
