from __future__ import annotations

import pytest

from identity.classifier import ErrorDisplay, classify, present
from identity.errors import (
    ConnectionFailure,
    ContractCallFailure,
    ContractFailureReason,
    ContractOperation,
    DisconnectFailure,
    ErrorKind,
    StoreFailure,
    StoreFailureReason,
    UserRejected,
    ValidationFailure,
    WalletUnavailable,
)


class TestClassify:
    @pytest.mark.parametrize(
        ("text", "kind"),
        [
            ("User rejected request", ErrorKind.USER_REJECTED),
            ("USER REJECTED THE CONNECTION", ErrorKind.USER_REJECTED),
            ("Not authorized by the wallet owner", ErrorKind.USER_REJECTED),
            ("No wallet detected", ErrorKind.WALLET_UNAVAILABLE),
            ("Unsupported wallet Version 4", ErrorKind.VERSION_MISMATCH),
            ("socket hang up", ErrorKind.CONNECTION_FAILURE),
            ("", ErrorKind.CONNECTION_FAILURE),
        ],
    )
    def test_keyword_rules(self, text, kind):
        assert classify(text) == kind

    def test_first_matching_rule_wins(self):
        assert classify("user rejected: wallet version not detected") == ErrorKind.USER_REJECTED
        assert classify("wallet version not detected") == ErrorKind.WALLET_UNAVAILABLE

    def test_accepts_exceptions(self):
        assert classify(RuntimeError("User rejected")) == ErrorKind.USER_REJECTED


class TestPresentWalletFailures:
    def test_user_rejected_text(self):
        display = present(ConnectionFailure("User rejected request"))

        assert display == ErrorDisplay(
            kind=ErrorKind.USER_REJECTED,
            message="Connection cancelled. Please approve the connection in your wallet.",
            detail="User rejected request",
        )

    def test_typed_wallet_errors_use_their_kind(self):
        assert present(WalletUnavailable("gone")).kind == ErrorKind.WALLET_UNAVAILABLE
        assert present(UserRejected("nope")).message.startswith("Connection cancelled")

    def test_unknown_text_falls_back_to_generic_message(self):
        display = present(ConnectionFailure("socket hang up"))

        assert display.kind == ErrorKind.CONNECTION_FAILURE
        assert display.message == (
            "Wallet connection failed: socket hang up. Please ensure your wallet is unlocked and set to Sepolia testnet."
        )

    def test_empty_text_uses_default_failure_text(self):
        display = present("")

        assert "Failed to connect wallet" in display.message

    def test_disconnect_failure_shows_its_message(self):
        display = present(DisconnectFailure("Failed to disconnect wallet"))

        assert display.message == "Failed to disconnect wallet"
        assert display.kind == ErrorKind.CONNECTION_FAILURE


class TestPresentTypedFailures:
    def test_validation_message_is_shown_verbatim(self):
        display = present(ValidationFailure("Please enter a valid username (1-50 characters)"))

        assert display.kind == ErrorKind.VALIDATION_FAILURE
        assert display.message == "Please enter a valid username (1-50 characters)"

    @pytest.mark.parametrize(
        ("reason", "fragment"),
        [
            (StoreFailureReason.RECORD_MISSING, "Player not found"),
            (StoreFailureReason.CONNECTIVITY, "unavailable right now"),
        ],
    )
    def test_store_failures(self, reason, fragment):
        display = present(StoreFailure(reason=reason, address="0xabc", detail="boom"))

        assert display.kind == ErrorKind.STORE_FAILURE
        assert fragment in display.message
        assert "boom" in display.detail

    @pytest.mark.parametrize(
        ("operation", "fragment"),
        [
            (ContractOperation.REGISTER, "Failed to register player on contract"),
            (ContractOperation.UPDATE_USERNAME, "Failed to update username on contract"),
            (None, "Contract call failed"),
        ],
    )
    def test_contract_failures(self, operation, fragment):
        error = ContractCallFailure(
            reason=ContractFailureReason.CONFIRMATION_FAILED,
            operation=operation,
            detail="version mismatch in calldata",
        )

        display = present(error)

        assert display.kind == ErrorKind.CONTRACT_CALL_FAILURE
        assert display.message.startswith(fragment)
        assert "version mismatch" in display.detail
