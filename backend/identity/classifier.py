"""Presentation-only error classification.

Turns whatever a wallet, store, or contract collaborator raised into one
human-readable sentence. Coordinators never call into this module; they
branch on the structured errors in identity.errors.
"""

from __future__ import annotations

from dataclasses import dataclass

from identity.errors import (
    ContractCallFailure,
    ContractOperation,
    DisconnectFailure,
    ErrorKind,
    IdentityError,
    StoreFailure,
    StoreFailureReason,
    ValidationFailure,
)

# Ordered: the first rule whose phrase appears in the lowercased text wins.
_RULES: tuple[tuple[tuple[str, ...], ErrorKind], ...] = (
    (("user rejected", "authorize"), ErrorKind.USER_REJECTED),
    (("detected",), ErrorKind.WALLET_UNAVAILABLE),
    (("version",), ErrorKind.VERSION_MISMATCH),
)

_WALLET_MESSAGES = {
    ErrorKind.USER_REJECTED: "Connection cancelled. Please approve the connection in your wallet.",
    ErrorKind.WALLET_UNAVAILABLE: (
        "No StarkNet wallet found. Please install Argent X or Braavos and refresh the page."
    ),
    ErrorKind.VERSION_MISMATCH: "Wallet version issue. Please update your wallet extension to the latest version.",
}

_STORE_MESSAGES = {
    StoreFailureReason.RECORD_MISSING: "Player not found. Please reconnect your wallet.",
    StoreFailureReason.CONNECTIVITY: "Player records are unavailable right now. Please try again later.",
}

_CONTRACT_MESSAGES = {
    ContractOperation.REGISTER: "Failed to register player on contract. Please reconnect your wallet to try again.",
    ContractOperation.UPDATE_USERNAME: "Failed to update username on contract. Please try again.",
    None: "Contract call failed. Please try again.",
}

_DEFAULT_FAILURE_TEXT = "Failed to connect wallet"


@dataclass(frozen=True)
class ErrorDisplay:
    """A failure as shown to the user, with the raw text kept for diagnostics."""

    kind: ErrorKind
    message: str
    detail: str = ""


def classify(raw: BaseException | str) -> ErrorKind:
    """Map free-form failure text to a display kind by keyword, first match wins."""
    text = str(raw).lower()
    for phrases, kind in _RULES:
        if any(phrase in text for phrase in phrases):
            return kind
    return ErrorKind.CONNECTION_FAILURE


def present(error: BaseException | str) -> ErrorDisplay:
    """Render any surfaced failure as a single user-facing sentence."""
    detail = str(error)

    if isinstance(error, ValidationFailure):
        return ErrorDisplay(kind=error.kind, message=detail, detail=detail)
    if isinstance(error, StoreFailure):
        return ErrorDisplay(kind=error.kind, message=_STORE_MESSAGES[error.reason], detail=detail)
    if isinstance(error, ContractCallFailure):
        return ErrorDisplay(kind=error.kind, message=_CONTRACT_MESSAGES[error.operation], detail=detail)
    if isinstance(error, DisconnectFailure):
        return ErrorDisplay(kind=error.kind, message=detail, detail=detail)
    if isinstance(error, IdentityError) and error.kind in _WALLET_MESSAGES:
        return ErrorDisplay(kind=error.kind, message=_WALLET_MESSAGES[error.kind], detail=detail)

    text = detail or _DEFAULT_FAILURE_TEXT
    kind = classify(text)
    if kind in _WALLET_MESSAGES:
        return ErrorDisplay(kind=kind, message=_WALLET_MESSAGES[kind], detail=text)
    return ErrorDisplay(
        kind=ErrorKind.CONNECTION_FAILURE,
        message=(
            f"Wallet connection failed: {text}. Please ensure your wallet is unlocked and set to Sepolia testnet."
        ),
        detail=text,
    )
