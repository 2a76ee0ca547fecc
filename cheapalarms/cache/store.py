"""
Query Cache

In-process store of query results keyed by tuples such as
("admin-estimates", search, status, page). Every write bumps the entry's
version and notifies subscribers. Prefix matching lets callers cancel,
invalidate or snapshot a whole family of keys at once.
"""

import asyncio
import copy
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Iterable, Optional

from cheapalarms.config import settings
from cheapalarms.error_handler import (
    AbortError,
    RateLimited,
    ValidationError,
)

QueryKey = tuple
Fetcher = Callable[[], Awaitable[Any]]
Listener = Callable[["CacheEvent", QueryKey], None]

# Failures that a retry cannot fix
NON_RETRYABLE = (AbortError, ValidationError, RateLimited)


def key_matches(key: QueryKey, prefix: Iterable[Any]) -> bool:
    prefix = tuple(prefix)
    return key[: len(prefix)] == prefix


class CacheEvent(str, Enum):
    UPDATED = "updated"
    INVALIDATED = "invalidated"
    REMOVED = "removed"


@dataclass
class CacheEntry:
    """One cached query result plus its bookkeeping"""

    key: QueryKey
    stale_time: float
    data: Any = None
    version: int = 0
    invalidated: bool = False
    updated_at: Optional[float] = None
    accessed_at: float = 0.0
    fetcher: Optional[Fetcher] = None
    fetch_task: Optional[asyncio.Task] = None
    error: Optional[BaseException] = None

    @property
    def has_data(self) -> bool:
        return self.updated_at is not None

    @property
    def is_fetching(self) -> bool:
        return self.fetch_task is not None and not self.fetch_task.done()

    def is_stale(self, now: float) -> bool:
        if self.invalidated or not self.has_data:
            return True
        return now - self.updated_at >= self.stale_time


@dataclass(frozen=True)
class Snapshot:
    """Deep copy of an entry taken before an optimistic write"""

    key: QueryKey
    data: Any
    invalidated: bool
    updated_at: Optional[float]
    version: int = field(compare=False)


class QueryCache:
    """Versioned key/value store of query results with subscriptions"""

    def __init__(
        self,
        stale_time: Optional[float] = None,
        gc_time: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.stale_time = settings.stale_time_seconds if stale_time is None else stale_time
        self.gc_time = settings.gc_time_seconds if gc_time is None else gc_time
        self.clock = clock
        self._entries: dict[QueryKey, CacheEntry] = {}
        self._listeners: list[Listener] = []

    # ========================================================================
    # Entries and subscriptions
    # ========================================================================

    def _entry(self, key: Iterable[Any]) -> CacheEntry:
        key = tuple(key)
        entry = self._entries.get(key)
        if entry is None:
            entry = CacheEntry(key=key, stale_time=self.stale_time, accessed_at=self.clock())
            self._entries[key] = entry
        return entry

    def _matching(self, prefix: Iterable[Any]) -> list[CacheEntry]:
        prefix = tuple(prefix)
        return [entry for key, entry in self._entries.items() if key_matches(key, prefix)]

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that removes it"""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, event: CacheEvent, key: QueryKey) -> None:
        for listener in list(self._listeners):
            listener(event, key)

    def _write(self, entry: CacheEntry, data: Any) -> None:
        entry.data = data
        entry.version += 1
        entry.updated_at = self.clock()
        entry.invalidated = False
        entry.error = None
        self._notify(CacheEvent.UPDATED, entry.key)

    # ========================================================================
    # Reads
    # ========================================================================

    def get_entry(self, key: Iterable[Any]) -> Optional[CacheEntry]:
        return self._entries.get(tuple(key))

    def get_query_data(self, key: Iterable[Any]) -> Any:
        entry = self._entries.get(tuple(key))
        if entry is None:
            return None
        entry.accessed_at = self.clock()
        return entry.data

    def get_queries_data(self, prefix: Iterable[Any]) -> list[tuple[QueryKey, Any]]:
        return [(entry.key, entry.data) for entry in self._matching(prefix) if entry.has_data]

    def keys(self, prefix: Iterable[Any] = ()) -> list[QueryKey]:
        return [entry.key for entry in self._matching(prefix)]

    def version(self, key: Iterable[Any]) -> int:
        entry = self._entries.get(tuple(key))
        return entry.version if entry else 0

    def is_stale(self, key: Iterable[Any]) -> bool:
        entry = self._entries.get(tuple(key))
        return True if entry is None else entry.is_stale(self.clock())

    # ========================================================================
    # Writes
    # ========================================================================

    def set_query_data(self, key: Iterable[Any], updater: Any) -> Any:
        """
        Replace an entry's data.

        Args:
            key: Query key
            updater: New value, or a function of the old value
        """
        entry = self._entry(key)
        data = updater(entry.data) if callable(updater) else updater
        self._write(entry, data)
        return data

    def set_queries_data(
        self, prefix: Iterable[Any], updater: Callable[[Any], Any]
    ) -> list[QueryKey]:
        """Apply updater to every entry under prefix that already holds data"""
        touched = []
        for entry in self._matching(prefix):
            if not entry.has_data:
                continue
            self._write(entry, updater(entry.data))
            touched.append(entry.key)
        return touched

    def invalidate_queries(
        self, prefix: Iterable[Any] = (), refetch: bool = False
    ) -> list[QueryKey]:
        """
        Mark every entry under prefix stale so the next read refetches.

        Args:
            refetch: Also start a background refetch for entries with a fetcher
        """
        invalidated = []
        for entry in self._matching(prefix):
            entry.invalidated = True
            invalidated.append(entry.key)
            self._notify(CacheEvent.INVALIDATED, entry.key)
            if refetch and entry.fetcher is not None and not entry.is_fetching:
                self._start_fetch(entry)
        return invalidated

    def remove_queries(self, prefix: Iterable[Any] = ()) -> int:
        removed = 0
        for entry in self._matching(prefix):
            if entry.is_fetching:
                entry.fetch_task.cancel()
            del self._entries[entry.key]
            self._notify(CacheEvent.REMOVED, entry.key)
            removed += 1
        return removed

    def collect_garbage(self) -> int:
        """Drop entries nobody has read within gc_time"""
        now = self.clock()
        expired = [
            entry.key
            for entry in self._entries.values()
            if not entry.is_fetching and now - entry.accessed_at >= self.gc_time
        ]
        for key in expired:
            del self._entries[key]
            self._notify(CacheEvent.REMOVED, key)
        if expired:
            logging.debug(f"Query cache collected {len(expired)} idle entries")
        return len(expired)

    # ========================================================================
    # Snapshot / restore
    # ========================================================================

    def snapshot(self, prefix: Iterable[Any]) -> list[Snapshot]:
        return [
            Snapshot(
                key=entry.key,
                data=copy.deepcopy(entry.data),
                invalidated=entry.invalidated,
                updated_at=entry.updated_at,
                version=entry.version,
            )
            for entry in self._matching(prefix)
            if entry.has_data
        ]

    def restore(self, snapshot: Snapshot, expected_version: Optional[int] = None) -> bool:
        """
        Put a snapshot back verbatim.

        When expected_version is given and the entry has been written since,
        nothing is restored and False is returned.
        """
        entry = self._entry(snapshot.key)
        if expected_version is not None and entry.version != expected_version:
            return False

        entry.data = snapshot.data
        entry.invalidated = snapshot.invalidated
        entry.updated_at = snapshot.updated_at
        entry.version += 1
        self._notify(CacheEvent.UPDATED, entry.key)
        return True

    # ========================================================================
    # Fetching
    # ========================================================================

    async def fetch_query(
        self,
        key: Iterable[Any],
        fetcher: Optional[Fetcher] = None,
        stale_time: Optional[float] = None,
        retry: int = 1,
    ) -> Any:
        """
        Return cached data while fresh, otherwise fetch it.

        Concurrent callers for the same key share one in-flight fetch.

        Raises:
            AbortError: The fetch was cancelled by cancel_queries
        """
        entry = self._entry(key)
        entry.accessed_at = self.clock()
        if fetcher is not None:
            entry.fetcher = fetcher
        if stale_time is not None:
            entry.stale_time = stale_time

        if not entry.is_stale(self.clock()):
            return entry.data

        if entry.is_fetching:
            task = entry.fetch_task
        else:
            if entry.fetcher is None:
                raise ValueError(f"No fetcher registered for query {entry.key!r}")
            task = self._start_fetch(entry, retry)

        # wait() leaves the shared task running if this caller is cancelled
        await asyncio.wait({task})
        if task.cancelled():
            raise AbortError(f"Query {entry.key!r} was cancelled")
        return task.result()

    def _start_fetch(self, entry: CacheEntry, retry: int = 1) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(self._run_fetch(entry, retry))
        entry.fetch_task = task
        task.add_done_callback(self._consume_result)
        return task

    @staticmethod
    def _consume_result(task: asyncio.Task) -> None:
        if not task.cancelled() and task.exception() is not None:
            logging.debug(f"Background query failed: {task.exception()}")

    async def _run_fetch(self, entry: CacheEntry, retry: int) -> Any:
        attempt = 0
        while True:
            try:
                data = await entry.fetcher()
                break
            except NON_RETRYABLE as e:
                entry.error = e
                raise
            except Exception as e:
                if attempt >= retry:
                    entry.error = e
                    raise
                attempt += 1
                logging.debug(f"Retrying query {entry.key!r} after: {e}")

        # The entry may have been removed or refetched meanwhile
        if self._entries.get(entry.key) is entry and entry.fetch_task is asyncio.current_task():
            self._write(entry, data)
        return data

    async def cancel_queries(self, prefix: Iterable[Any] = ()) -> int:
        """
        Cancel in-flight fetches under prefix and wait until they are gone,
        so no late response can land afterwards.
        """
        tasks = []
        for entry in self._matching(prefix):
            if entry.is_fetching:
                entry.fetch_task.cancel()
                tasks.append(entry.fetch_task)
        if tasks:
            await asyncio.wait(tasks)
        return len(tasks)
