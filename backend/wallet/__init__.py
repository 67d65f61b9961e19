"""Wallet connection state and the connector boundary."""

from wallet.session import ConnectedWallet, SessionState, WalletConnector, WalletSession

__all__ = [
    "ConnectedWallet",
    "SessionState",
    "WalletConnector",
    "WalletSession",
]
