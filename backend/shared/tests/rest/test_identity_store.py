"""Tests for RestIdentityStore against a mocked PostgREST endpoint."""

from __future__ import annotations

import json
from datetime import UTC, datetime

import httpx
import pytest

from identity.errors import DuplicateIdentityError, StoreFailure, StoreFailureReason
from shared.dal.models import IdentityRecord, IdentityUpdate
from shared.rest.identity_store import RestIdentityStore, record_to_row, row_to_record

BASE_URL = "http://store.test"
CREATED = datetime(2026, 1, 1, tzinfo=UTC)
LATER = datetime(2026, 1, 2, tzinfo=UTC)

ROW = {
    "wallet_address": "0xabc",
    "username": "alice",
    "highest_score": 120,
    "total_accumulated_score": 300,
    "games_played": 4,
    "updated": True,
    "created_at": "2026-01-01T00:00:00+00:00",
    "updated_at": "2026-01-01T00:00:00+00:00",
}


def _store(handler) -> tuple[RestIdentityStore, list[httpx.Request]]:
    seen: list[httpx.Request] = []

    def recording(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    client = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(recording))
    return RestIdentityStore(client), seen


class TestRowMapping:
    def test_row_to_record_maps_flag_column(self):
        record = row_to_record(ROW)

        assert record.on_chain_confirmed is True
        assert record.highest_score == 120
        assert record.created_at == CREATED

    def test_nullable_columns_default(self):
        row = {**ROW, "highest_score": None, "games_played": None, "updated": None, "updated_at": None}

        record = row_to_record(row)

        assert record.highest_score == 0
        assert record.games_played == 0
        assert record.on_chain_confirmed is False
        assert record.updated_at == record.created_at

    def test_record_to_row_matches_table_columns(self):
        assert record_to_row(row_to_record(ROW)) == ROW


class TestGet:
    async def test_queries_by_wallet_address(self):
        store, seen = _store(lambda request: httpx.Response(200, json=[ROW]))

        record = await store.get_identity("0xabc")

        assert record is not None
        assert record.username == "alice"
        assert seen[0].method == "GET"
        assert seen[0].url.path == "/users"
        assert seen[0].url.params["wallet_address"] == "eq.0xabc"

    async def test_empty_result_is_none(self):
        store, _ = _store(lambda request: httpx.Response(200, json=[]))

        assert await store.get_identity("0xabc") is None

    async def test_server_error_is_connectivity(self):
        store, _ = _store(lambda request: httpx.Response(500, text="db down"))

        with pytest.raises(StoreFailure) as exc_info:
            await store.get_identity("0xabc")

        assert exc_info.value.reason == StoreFailureReason.CONNECTIVITY
        assert "HTTP 500" in exc_info.value.detail

    async def test_transport_error_is_connectivity(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        store, _ = _store(handler)

        with pytest.raises(StoreFailure) as exc_info:
            await store.get_identity("0xabc")

        assert exc_info.value.reason == StoreFailureReason.CONNECTIVITY

    async def test_malformed_body_is_connectivity(self):
        store, _ = _store(lambda request: httpx.Response(200, text="<html>"))

        with pytest.raises(StoreFailure, match="malformed"):
            await store.get_identity("0xabc")

    @pytest.mark.parametrize(
        "row",
        [
            {**ROW, "username": None},
            {k: v for k, v in ROW.items() if k != "created_at"},
            {**ROW, "created_at": "yesterday"},
        ],
    )
    async def test_undecodable_row_is_connectivity(self, row):
        store, _ = _store(lambda request: httpx.Response(200, json=[row]))

        with pytest.raises(StoreFailure) as exc_info:
            await store.get_identity("0xabc")

        assert exc_info.value.reason == StoreFailureReason.CONNECTIVITY
        assert "undecodable identity row" in exc_info.value.detail

    async def test_non_row_payload_is_connectivity(self):
        store, _ = _store(lambda request: httpx.Response(200, json="ok"))

        with pytest.raises(StoreFailure, match="unexpected response body"):
            await store.get_identity("0xabc")


class TestCreate:
    async def test_posts_row(self):
        store, seen = _store(lambda request: httpx.Response(201, json=[ROW]))
        record = row_to_record(ROW)

        assert await store.create_identity(record) == record
        assert seen[0].method == "POST"
        assert json.loads(seen[0].content)["updated"] is True

    async def test_conflict_is_duplicate_identity_error(self):
        store, _ = _store(lambda request: httpx.Response(409, json={"code": "23505"}))

        with pytest.raises(DuplicateIdentityError, match="already exists"):
            await store.create_identity(row_to_record(ROW))

    @pytest.mark.parametrize("body", [b"", b"<html>", b'[{"username": null}]'])
    async def test_stored_row_is_returned_whatever_the_body(self, body):
        store, _ = _store(lambda request: httpx.Response(201, content=body))
        record = row_to_record(ROW)

        assert await store.create_identity(record) == record

    async def test_server_error_is_connectivity(self):
        store, _ = _store(lambda request: httpx.Response(503, text="unavailable"))

        with pytest.raises(StoreFailure) as exc_info:
            await store.create_identity(row_to_record(ROW))

        assert exc_info.value.reason == StoreFailureReason.CONNECTIVITY


class TestUpdate:
    async def test_patches_changed_columns(self):
        store, seen = _store(lambda request: httpx.Response(200, json=[{**ROW, "username": "bob"}]))

        updated = await store.update_identity("0xabc", IdentityUpdate(updated_at=LATER, username="bob"))

        assert updated.username == "bob"
        body = json.loads(seen[0].content)
        assert body == {"updated_at": LATER.isoformat(), "username": "bob"}
        assert seen[0].method == "PATCH"
        assert seen[0].url.params["wallet_address"] == "eq.0xabc"

    async def test_flag_maps_to_updated_column(self):
        store, seen = _store(lambda request: httpx.Response(200, json=[ROW]))

        await store.update_identity("0xabc", IdentityUpdate(updated_at=LATER, on_chain_confirmed=True))

        assert json.loads(seen[0].content)["updated"] is True

    async def test_no_rows_is_record_missing(self):
        store, _ = _store(lambda request: httpx.Response(200, json=[]))

        with pytest.raises(StoreFailure) as exc_info:
            await store.update_identity("0xabc", IdentityUpdate(updated_at=LATER, username="bob"))

        assert exc_info.value.reason == StoreFailureReason.RECORD_MISSING

    async def test_undecodable_row_is_connectivity(self):
        store, _ = _store(lambda request: httpx.Response(200, json=[{**ROW, "username": None}]))

        with pytest.raises(StoreFailure) as exc_info:
            await store.update_identity("0xabc", IdentityUpdate(updated_at=LATER, username="bob"))

        assert exc_info.value.reason == StoreFailureReason.CONNECTIVITY


class TestDelete:
    async def test_deletes_by_wallet_address(self):
        store, seen = _store(lambda request: httpx.Response(200, json=[ROW]))

        await store.delete_identity("0xabc")

        assert seen[0].method == "DELETE"
        assert seen[0].url.params["wallet_address"] == "eq.0xabc"

    async def test_no_rows_is_record_missing(self):
        store, _ = _store(lambda request: httpx.Response(200, json=[]))

        with pytest.raises(StoreFailure) as exc_info:
            await store.delete_identity("0xabc")

        assert exc_info.value.reason == StoreFailureReason.RECORD_MISSING
