"""SQLite database layer: connection management and repository implementations."""

from shared.db.connection import Database
from shared.db.identity_store import SqliteIdentityStore

__all__ = [
    "Database",
    "SqliteIdentityStore",
]
