"""Tests for UsernameUpdateCoordinator and the on-chain gating flag."""

from __future__ import annotations

import pytest

from identity.errors import (
    ConnectionFailure,
    ContractCallFailure,
    ContractFailureReason,
    ContractOperation,
    StoreFailure,
    StoreFailureReason,
    ValidationFailure,
)
from identity.rename import UsernameUpdateCoordinator
from identity.tests.fakes import (
    EXISTING_ADDRESS,
    FIXED_NOW,
    FakeConnector,
    FakeGateway,
    InMemoryIdentityStore,
    connected_session,
    fixed_clock,
    make_record,
)
from wallet.session import WalletSession


@pytest.fixture
def store():
    return InMemoryIdentityStore(make_record(EXISTING_ADDRESS, "alice", highest_score=40))


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def coordinator(store, gateway):
    return UsernameUpdateCoordinator(store, gateway, clock=fixed_clock)


@pytest.fixture
async def session():
    return await connected_session(EXISTING_ADDRESS)


class TestFirstRename:
    async def test_anchors_on_chain_then_updates_store(self, store, gateway, coordinator, session):
        details = await coordinator.rename(session, "alice_2")

        assert gateway.update_calls == ["alice_2"]
        record = store.records[EXISTING_ADDRESS]
        assert record.username == "alice_2"
        assert record.on_chain_confirmed is True
        assert record.updated_at == FIXED_NOW
        assert details.username == "alice_2"
        assert details.score == "40"

    async def test_second_rename_skips_contract(self, store, gateway, coordinator, session):
        await coordinator.rename(session, "alice_2")
        await coordinator.rename(session, "alice_3")

        assert gateway.update_calls == ["alice_2"]
        assert store.records[EXISTING_ADDRESS].username == "alice_3"
        assert store.records[EXISTING_ADDRESS].on_chain_confirmed is True

    async def test_contract_failure_leaves_store_untouched(self, store, gateway, coordinator, session):
        gateway.submit_error = RuntimeError("user rejected the transaction")

        with pytest.raises(ContractCallFailure) as exc_info:
            await coordinator.rename(session, "alice_2")

        assert exc_info.value.operation == ContractOperation.UPDATE_USERNAME
        assert exc_info.value.reason == ContractFailureReason.SUBMISSION_REJECTED
        assert store.records[EXISTING_ADDRESS] == make_record(EXISTING_ADDRESS, "alice", highest_score=40)
        assert store.count("update") == 0

    async def test_unconfirmed_receipt_leaves_store_untouched(self, store, gateway, coordinator, session):
        gateway.confirmed = False

        with pytest.raises(ContractCallFailure) as exc_info:
            await coordinator.rename(session, "alice_2")

        assert exc_info.value.reason == ContractFailureReason.CONFIRMATION_FAILED
        assert store.count("update") == 0


class TestAnchoredRename:
    async def test_updates_store_only(self, gateway, session):
        store = InMemoryIdentityStore(make_record(EXISTING_ADDRESS, "alice", on_chain_confirmed=True))
        coordinator = UsernameUpdateCoordinator(store, gateway, clock=fixed_clock)

        details = await coordinator.rename(session, "carol")

        assert gateway.update_calls == []
        assert gateway.waited == []
        assert details.username == "carol"
        assert store.records[EXISTING_ADDRESS].on_chain_confirmed is True

    async def test_store_failure_is_raised(self, gateway, session):
        store = InMemoryIdentityStore(make_record(EXISTING_ADDRESS, "alice", on_chain_confirmed=True))
        store.fail_updates = True
        coordinator = UsernameUpdateCoordinator(store, gateway)

        with pytest.raises(StoreFailure) as exc_info:
            await coordinator.rename(session, "carol")

        assert exc_info.value.reason == StoreFailureReason.CONNECTIVITY


class TestValidation:
    @pytest.mark.parametrize(
        ("username", "message"),
        [
            ("", "valid username"),
            ("x" * 51, "valid username"),
            ("bad name", "alphanumeric"),
            ("émile", "alphanumeric"),
        ],
    )
    async def test_invalid_username_calls_nothing(self, store, gateway, coordinator, session, username, message):
        with pytest.raises(ValidationFailure, match=message):
            await coordinator.rename(session, username)

        assert store.calls == []
        assert gateway.update_calls == []

    async def test_validation_runs_before_session_check(self, store, gateway, coordinator):
        session = WalletSession(FakeConnector())

        with pytest.raises(ValidationFailure):
            await coordinator.rename(session, "")

    async def test_disconnected_session_is_rejected(self, store, coordinator):
        session = WalletSession(FakeConnector())

        with pytest.raises(ConnectionFailure):
            await coordinator.rename(session, "alice_2")

        assert store.calls == []


class TestMissingRecord:
    async def test_unknown_wallet_raises_record_missing(self, gateway):
        store = InMemoryIdentityStore()
        coordinator = UsernameUpdateCoordinator(store, gateway)
        session = await connected_session(EXISTING_ADDRESS)

        with pytest.raises(StoreFailure) as exc_info:
            await coordinator.rename(session, "alice_2")

        assert exc_info.value.reason == StoreFailureReason.RECORD_MISSING
        assert gateway.update_calls == []
