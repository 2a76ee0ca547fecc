"""
Client-side query cache and optimistic mutation protocol
"""

from .store import CacheEntry, CacheEvent, QueryCache, QueryKey, Snapshot, key_matches
from .coordinator import (
    MutationOutcome,
    MutationState,
    OptimisticMutation,
    OptimisticUpdate,
)

__all__ = [
    "CacheEntry",
    "CacheEvent",
    "QueryCache",
    "QueryKey",
    "Snapshot",
    "key_matches",
    "MutationOutcome",
    "MutationState",
    "OptimisticMutation",
    "OptimisticUpdate",
]
