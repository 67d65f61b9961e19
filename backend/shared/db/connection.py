"""SQLite connection holding the identities table."""

import contextlib
import os
import sqlite3
from collections.abc import Iterator
from pathlib import Path

import structlog

logger = structlog.get_logger()

_DB_FILE_PERMISSIONS = 0o600
# WAL mode creates these next to the main file.
_DB_FILE_SUFFIXES = ("", "-wal", "-shm")

_SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS identities (
    wallet_address TEXT PRIMARY KEY,
    username TEXT NOT NULL,
    on_chain_confirmed INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    data TEXT NOT NULL
);
"""


class Database:
    """Single shared SQLite connection for the identity store."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._conn: sqlite3.Connection | None = None

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("Database is not connected")
        return self._conn

    def connect(self) -> None:
        """Open the file (creating parent directories), apply pragmas and schema."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self._path, check_same_thread=False)
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA busy_timeout=5000")
        conn.executescript(_SCHEMA_SQL)
        self._conn = conn
        self._restrict_permissions()
        logger.info("identity database opened", path=str(self._path))

    @contextlib.contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Commit on success, roll back and re-raise on any error."""
        conn = self.connection
        try:
            yield conn
        except BaseException:
            conn.rollback()
            raise
        conn.commit()

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def _restrict_permissions(self) -> None:
        if os.name != "posix":  # pragma: no cover
            return
        for suffix in _DB_FILE_SUFFIXES:
            candidate = self._path.with_name(self._path.name + suffix)
            if not candidate.exists():
                continue
            try:
                candidate.chmod(_DB_FILE_PERMISSIONS)
            except OSError as exc:
                logger.warning("could not restrict database file permissions", path=str(candidate), error=str(exc))
