"""Identity store backed by a PostgREST-style HTTP API.

Talks to the `users` table exposed under the configured backend base URL.
Column names follow that table (`updated` holds the on-chain confirmation
flag); records are mapped to and from IdentityRecord here so nothing above
this module sees the wire shape.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import TYPE_CHECKING, Any

import httpx
import structlog

from identity.errors import DuplicateIdentityError, StoreFailure, StoreFailureReason
from shared.dal.identity_store import IdentityStore
from shared.dal.models import IdentityRecord

if TYPE_CHECKING:
    from shared.dal.models import IdentityUpdate

logger = structlog.get_logger()

USERS_TABLE = "users"

_RETURN_REPRESENTATION = {"Prefer": "return=representation"}


def record_to_row(record: IdentityRecord) -> dict[str, Any]:
    return {
        "wallet_address": record.wallet_address,
        "username": record.username,
        "highest_score": record.highest_score,
        "total_accumulated_score": record.total_accumulated_score,
        "games_played": record.games_played,
        "updated": record.on_chain_confirmed,
        "created_at": record.created_at.isoformat(),
        "updated_at": record.updated_at.isoformat(),
    }


def row_to_record(row: dict[str, Any]) -> IdentityRecord:
    return IdentityRecord(
        wallet_address=row["wallet_address"],
        username=row["username"],
        highest_score=row.get("highest_score") or 0,
        total_accumulated_score=row.get("total_accumulated_score") or 0,
        games_played=row.get("games_played") or 0,
        on_chain_confirmed=bool(row.get("updated")),
        created_at=row["created_at"],
        updated_at=row.get("updated_at") or row["created_at"],
    )


class RestIdentityStore(IdentityStore):
    """IdentityStore over HTTP.

    The caller owns the httpx.AsyncClient (base URL, auth headers, timeouts)
    and closes it. Transport errors and error responses surface as
    StoreFailure(CONNECTIVITY), and so do rows that do not decode into an
    IdentityRecord. A 409 on insert surfaces as DuplicateIdentityError.
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def get_identity(self, wallet_address: str) -> IdentityRecord | None:
        response = await self._send(
            "GET",
            wallet_address,
            params={"wallet_address": f"eq.{wallet_address}", "select": "*"},
        )
        rows = _rows(response, wallet_address)
        if not rows:
            return None
        return _decode(rows[0], wallet_address)

    async def create_identity(self, record: IdentityRecord) -> IdentityRecord:
        """Insert a record. A 2xx means the row is stored, so the body is not read back."""
        response = await self._send("POST", record.wallet_address, json=record_to_row(record))
        if response.status_code == HTTPStatus.CONFLICT:
            raise DuplicateIdentityError(record.wallet_address)
        if response.is_error:
            raise _connectivity(record.wallet_address, f"HTTP {response.status_code}: {response.text}")
        return record

    async def update_identity(self, wallet_address: str, changes: IdentityUpdate) -> IdentityRecord:
        body: dict[str, Any] = {"updated_at": changes.updated_at.isoformat()}
        if changes.username is not None:
            body["username"] = changes.username
        if changes.on_chain_confirmed is not None:
            body["updated"] = changes.on_chain_confirmed
        response = await self._send(
            "PATCH",
            wallet_address,
            params={"wallet_address": f"eq.{wallet_address}"},
            json=body,
            headers=_RETURN_REPRESENTATION,
        )
        rows = _rows(response, wallet_address)
        if not rows:
            raise StoreFailure(reason=StoreFailureReason.RECORD_MISSING, address=wallet_address)
        return _decode(rows[0], wallet_address)

    async def delete_identity(self, wallet_address: str) -> None:
        response = await self._send(
            "DELETE",
            wallet_address,
            params={"wallet_address": f"eq.{wallet_address}"},
            headers=_RETURN_REPRESENTATION,
        )
        if not _rows(response, wallet_address):
            raise StoreFailure(reason=StoreFailureReason.RECORD_MISSING, address=wallet_address)
        logger.info("identity deleted", wallet_address=wallet_address)

    async def _send(self, method: str, wallet_address: str, **kwargs: Any) -> httpx.Response:  # noqa: ANN401
        try:
            return await self._client.request(method, f"/{USERS_TABLE}", **kwargs)
        except httpx.RequestError as exc:
            raise _connectivity(wallet_address, str(exc)) from exc


def _rows(response: httpx.Response, wallet_address: str) -> list[dict[str, Any]]:
    """Decode the row list from a response, treating any error status as a connectivity failure."""
    if response.is_error:
        raise _connectivity(wallet_address, f"HTTP {response.status_code}: {response.text}")
    if not response.content:
        return []
    try:
        payload = response.json()
    except ValueError as exc:
        raise _connectivity(wallet_address, f"malformed response body: {exc}") from exc
    if isinstance(payload, dict):
        return [payload]
    if not isinstance(payload, list):
        raise _connectivity(wallet_address, f"unexpected response body: {payload!r}")
    return payload


def _decode(row: dict[str, Any], wallet_address: str) -> IdentityRecord:
    try:
        return row_to_record(row)
    except (KeyError, TypeError, ValueError) as exc:
        raise _connectivity(wallet_address, f"undecodable identity row: {exc!r}") from exc


def _connectivity(wallet_address: str, detail: str) -> StoreFailure:
    return StoreFailure(reason=StoreFailureReason.CONNECTIVITY, address=wallet_address, detail=detail)
