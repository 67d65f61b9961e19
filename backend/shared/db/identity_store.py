"""SQLite-backed identity store."""

from __future__ import annotations

import asyncio
import json
import sqlite3
from typing import TYPE_CHECKING

import structlog

from identity.errors import DuplicateIdentityError, StoreFailure, StoreFailureReason
from shared.dal.identity_store import IdentityStore
from shared.dal.models import IdentityRecord, IdentityUpdate

if TYPE_CHECKING:
    from shared.db.connection import Database

logger = structlog.get_logger()

_SET_MUTABLE_COLUMNS = "username = ?, on_chain_confirmed = ?, updated_at = ?, data = ?"


class SqliteIdentityStore(IdentityStore):
    """SQLite implementation of IdentityStore.

    Stores full records as JSON next to the key and flag columns.
    Mutations run under an asyncio lock so the read-modify-write in
    update_identity cannot interleave with another mutation. Driver errors
    surface as StoreFailure(CONNECTIVITY); a duplicate wallet address on
    insert surfaces as DuplicateIdentityError; a stored row that no
    longer decodes is reported as StoreFailure(CONNECTIVITY).
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = asyncio.Lock()

    async def get_identity(self, wallet_address: str) -> IdentityRecord | None:
        try:
            row = self._db.connection.execute(
                "SELECT data FROM identities WHERE wallet_address = ?",
                (wallet_address,),
            ).fetchone()
        except sqlite3.Error as exc:
            raise _connectivity(wallet_address, exc) from exc
        if row is None:
            return None
        try:
            return IdentityRecord.model_validate(json.loads(row[0]))
        except ValueError as exc:
            raise StoreFailure(
                reason=StoreFailureReason.CONNECTIVITY,
                address=wallet_address,
                detail=f"undecodable identity row: {exc}",
            ) from exc

    async def create_identity(self, record: IdentityRecord) -> IdentityRecord:
        """Insert a record. Raises DuplicateIdentityError if the wallet address is already present."""
        async with self._lock:
            try:
                with self._db.transaction() as conn:
                    conn.execute(
                        "INSERT INTO identities"
                        " (wallet_address, username, on_chain_confirmed, updated_at, data, created_at)"
                        " VALUES (?, ?, ?, ?, ?, ?)",
                        (record.wallet_address, *_mutable_columns(record), record.created_at.isoformat()),
                    )
            except sqlite3.IntegrityError as exc:
                raise DuplicateIdentityError(record.wallet_address) from exc
            except sqlite3.Error as exc:
                raise _connectivity(record.wallet_address, exc) from exc
        return record

    async def update_identity(self, wallet_address: str, changes: IdentityUpdate) -> IdentityRecord:
        async with self._lock:
            current = await self.get_identity(wallet_address)
            if current is None:
                raise StoreFailure(reason=StoreFailureReason.RECORD_MISSING, address=wallet_address)
            updated = current.model_copy(update=changes.changed_fields())
            try:
                with self._db.transaction() as conn:
                    conn.execute(
                        f"UPDATE identities SET {_SET_MUTABLE_COLUMNS} WHERE wallet_address = ?",  # noqa: S608
                        (*_mutable_columns(updated), wallet_address),
                    )
            except sqlite3.Error as exc:
                raise _connectivity(wallet_address, exc) from exc
        return updated

    async def delete_identity(self, wallet_address: str) -> None:
        async with self._lock:
            try:
                with self._db.transaction() as conn:
                    deleted = conn.execute(
                        "DELETE FROM identities WHERE wallet_address = ?",
                        (wallet_address,),
                    ).rowcount
            except sqlite3.Error as exc:
                raise _connectivity(wallet_address, exc) from exc
        if deleted == 0:
            raise StoreFailure(reason=StoreFailureReason.RECORD_MISSING, address=wallet_address)
        logger.info("identity deleted", wallet_address=wallet_address)


def _mutable_columns(record: IdentityRecord) -> tuple[str, int, str, str]:
    return (
        record.username,
        int(record.on_chain_confirmed),
        record.updated_at.isoformat(),
        record.model_dump_json(),
    )


def _connectivity(wallet_address: str, exc: sqlite3.Error) -> StoreFailure:
    return StoreFailure(reason=StoreFailureReason.CONNECTIVITY, address=wallet_address, detail=str(exc))
