"""Data access layer: repository interfaces and shared persistence models."""

from shared.dal.identity_store import IdentityStore
from shared.dal.models import IdentityRecord, IdentityUpdate

__all__ = [
    "IdentityRecord",
    "IdentityStore",
    "IdentityUpdate",
]
