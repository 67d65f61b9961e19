"""Typed failures for wallet, store, and contract collaborators.

Collaborators raise these at the call site so the coordinators can branch on
structured kinds. Turning arbitrary failure text into a display message is
the job of identity.classifier and never drives saga control flow.
"""

from enum import StrEnum
from typing import ClassVar


class ErrorKind(StrEnum):
    WALLET_UNAVAILABLE = "wallet_unavailable"
    USER_REJECTED = "user_rejected"
    VERSION_MISMATCH = "version_mismatch"
    CONNECTION_FAILURE = "connection_failure"
    VALIDATION_FAILURE = "validation_failure"
    STORE_FAILURE = "store_failure"
    CONTRACT_CALL_FAILURE = "contract_call_failure"


class IdentityError(Exception):
    """Base class for every failure the identity layer surfaces."""

    kind: ClassVar[ErrorKind]


class WalletError(IdentityError):
    """Wallet connect/disconnect failure. Terminal for the attempt."""


class WalletUnavailable(WalletError):
    kind = ErrorKind.WALLET_UNAVAILABLE


class UserRejected(WalletError):
    kind = ErrorKind.USER_REJECTED


class VersionMismatch(WalletError):
    kind = ErrorKind.VERSION_MISMATCH


class ConnectionFailure(WalletError):
    """Generic connection failure carrying the original message for diagnostics."""

    kind = ErrorKind.CONNECTION_FAILURE


class DisconnectFailure(ConnectionFailure):
    """Upstream disconnect call failed. The local session is cleared anyway."""


class ValidationFailure(IdentityError):
    """Input rejected before any collaborator was called."""

    kind = ErrorKind.VALIDATION_FAILURE


class StoreFailureReason(StrEnum):
    RECORD_MISSING = "record_missing"
    CONNECTIVITY = "connectivity"


class StoreFailure(IdentityError):
    """Off-chain identity store failure.

    Attributes:
        reason: RECORD_MISSING when the keyed record does not exist,
            CONNECTIVITY for every other storage problem.
        address: Wallet address the operation was keyed by.
        detail: Underlying driver or transport message.

    """

    kind = ErrorKind.STORE_FAILURE

    def __init__(self, *, reason: StoreFailureReason, address: str, detail: str = "") -> None:
        self.reason = reason
        self.address = address
        self.detail = detail
        message = f"identity store {reason} for {address}"
        super().__init__(f"{message}: {detail}" if detail else message)


class ContractFailureReason(StrEnum):
    MISSING_HANDLE = "missing_handle"
    SUBMISSION_REJECTED = "submission_rejected"
    CONFIRMATION_FAILED = "confirmation_failed"
    CONFIRMATION_TIMEOUT = "confirmation_timeout"


class ContractOperation(StrEnum):
    REGISTER = "register"
    UPDATE_USERNAME = "update_username"


class ContractCallFailure(IdentityError):
    """On-chain submission or confirmation failure.

    Attributes:
        reason: Which step failed.
        operation: The contract call that was being driven. None when raised
            by a confirmation wait that does not know which call it serves.
        detail: Node, wallet, or revert message.
        transaction_hash: Hash of the submitted transaction, when one exists.

    """

    kind = ErrorKind.CONTRACT_CALL_FAILURE

    def __init__(
        self,
        *,
        reason: ContractFailureReason,
        operation: ContractOperation | None = None,
        detail: str = "",
        transaction_hash: str | None = None,
    ) -> None:
        self.reason = reason
        self.operation = operation
        self.detail = detail
        self.transaction_hash = transaction_hash
        message = f"{operation or 'contract call'} failed ({reason})"
        super().__init__(f"{message}: {detail}" if detail else message)


class DuplicateIdentityError(ValueError):
    """create_identity found a record already stored for the wallet address."""

    def __init__(self, address: str) -> None:
        self.address = address
        super().__init__(f"Identity for wallet '{address}' already exists")
