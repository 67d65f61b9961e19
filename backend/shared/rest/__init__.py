"""HTTP-backed repository implementations."""

from shared.rest.identity_store import RestIdentityStore

__all__ = [
    "RestIdentityStore",
]
