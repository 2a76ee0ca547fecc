"""Tests for the query cache."""

import asyncio

import pytest

from cheapalarms.cache import CacheEvent, QueryCache, key_matches
from cheapalarms.error_handler import AbortError, RateLimited, ValidationError


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock) -> QueryCache:
    return QueryCache(stale_time=30, gc_time=600, clock=clock)


class TestKeys:
    def test_prefix_matching_compares_whole_elements(self):
        assert key_matches(("admin-estimates", None, "sent", 1, 20), ("admin-estimates",))
        assert key_matches(("admin-estimate", "e1"), ("admin-estimate", "e1"))
        assert not key_matches(("admin-estimates-trash", None), ("admin-estimates",))
        assert not key_matches(("admin-estimate", "e1"), ("admin-estimate", "e2"))


class TestWrites:
    def test_every_write_bumps_version_and_notifies(self, store):
        events = []
        store.subscribe(lambda event, key: events.append((event, key)))

        store.set_query_data(("wp-users",), [{"id": "1"}])
        store.set_query_data(("wp-users",), lambda old: old + [{"id": "2"}])

        assert store.version(("wp-users",)) == 2
        assert store.get_query_data(("wp-users",)) == [{"id": "1"}, {"id": "2"}]
        assert events == [(CacheEvent.UPDATED, ("wp-users",))] * 2

    def test_unsubscribe(self, store):
        events = []
        unsubscribe = store.subscribe(lambda event, key: events.append(event))
        unsubscribe()

        store.set_query_data(("k",), 1)

        assert events == []

    def test_set_queries_data_only_touches_entries_with_data(self, store):
        store.set_query_data(("admin-estimates", 1), {"items": [1, 2]})
        store.set_query_data(("admin-estimates", 2), {"items": [3]})
        store._entry(("admin-estimates", 3))

        touched = store.set_queries_data(("admin-estimates",), lambda old: {"items": []})

        assert sorted(touched) == [("admin-estimates", 1), ("admin-estimates", 2)]
        assert store.get_query_data(("admin-estimates", 3)) is None

    def test_get_queries_data_skips_entries_without_data(self, store):
        store.set_query_data(("admin-invoices", 1), {"items": ["a"]})
        store.set_query_data(("admin-invoices", 2), {"items": []})
        store._entry(("admin-invoices", 3))
        store.set_query_data(("admin-invoice", "inv-1"), {"id": "inv-1"})

        assert store.get_queries_data(("admin-invoices",)) == [
            (("admin-invoices", 1), {"items": ["a"]}),
            (("admin-invoices", 2), {"items": []}),
        ]

    @pytest.mark.asyncio
    async def test_remove_queries_drops_entries_and_stops_fetches(self, store):
        events = []
        store.subscribe(lambda event, key: events.append((event, key)))
        store.set_query_data(("xero-status",), {"connected": True})
        store.set_query_data(("xero-authorize",), {"url": "https://login.xero.test"})

        started = asyncio.Event()

        async def slow_fetch():
            started.set()
            await asyncio.sleep(10)
            return {"connected": False}

        store.invalidate_queries(("xero-status",))
        reader = asyncio.ensure_future(store.fetch_query(("xero-status",), slow_fetch))
        await started.wait()

        assert store.remove_queries(("xero-status",)) == 1

        await asyncio.gather(reader, return_exceptions=True)
        assert reader.done()
        assert store.keys() == [("xero-authorize",)]
        assert (CacheEvent.REMOVED, ("xero-status",)) in events


class TestStaleness:
    def test_fresh_until_stale_time(self, store, clock):
        store.set_query_data(("k",), "v")
        assert not store.is_stale(("k",))

        clock.now += 30
        assert store.is_stale(("k",))

    def test_invalidate_marks_prefix_stale(self, store):
        store.set_query_data(("admin-estimates", "a"), 1)
        store.set_query_data(("admin-estimates-trash",), 2)

        invalidated = store.invalidate_queries(("admin-estimates",))

        assert invalidated == [("admin-estimates", "a")]
        assert store.is_stale(("admin-estimates", "a"))
        assert not store.is_stale(("admin-estimates-trash",))

    def test_missing_key_is_stale(self, store):
        assert store.is_stale(("nothing",))


class TestSnapshots:
    def test_snapshot_is_a_deep_copy(self, store):
        store.set_query_data(("admin-estimates",), {"items": [{"id": "e1"}]})
        snap = store.snapshot(("admin-estimates",))[0]

        store.get_query_data(("admin-estimates",))["items"].clear()

        assert snap.data == {"items": [{"id": "e1"}]}

    def test_restore_puts_data_back_verbatim(self, store):
        store.set_query_data(("k",), {"a": 1})
        snap = store.snapshot(("k",))[0]
        store.set_query_data(("k",), {"a": 2})

        assert store.restore(snap, expected_version=store.version(("k",)))
        assert store.get_query_data(("k",)) == {"a": 1}

    def test_restore_skipped_when_newer_write_landed(self, store):
        store.set_query_data(("k",), "original")
        snap = store.snapshot(("k",))[0]
        store.set_query_data(("k",), "optimistic")
        expected = store.version(("k",))
        store.set_query_data(("k",), "refetched")

        assert not store.restore(snap, expected_version=expected)
        assert store.get_query_data(("k",)) == "refetched"


class TestGarbageCollection:
    def test_idle_entries_are_dropped(self, store, clock):
        store.set_query_data(("old",), 1)
        clock.now += 500
        store.set_query_data(("new",), 2)
        clock.now += 200

        assert store.collect_garbage() == 1
        assert store.keys() == [("new",)]

    def test_reads_keep_entries_alive(self, store, clock):
        store.set_query_data(("k",), 1)
        clock.now += 500
        store.get_query_data(("k",))
        clock.now += 200

        assert store.collect_garbage() == 0


class TestFetching:
    @pytest.mark.asyncio
    async def test_fresh_data_is_served_without_fetching(self, store):
        calls = []

        async def fetcher():
            calls.append(1)
            return {"n": len(calls)}

        assert await store.fetch_query(("k",), fetcher) == {"n": 1}
        assert await store.fetch_query(("k",), fetcher) == {"n": 1}
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_invalidated_entry_refetches(self, store):
        values = iter(["first", "second"])

        async def fetcher():
            return next(values)

        await store.fetch_query(("k",), fetcher)
        store.invalidate_queries(("k",))

        assert await store.fetch_query(("k",)) == "second"

    @pytest.mark.asyncio
    async def test_concurrent_reads_share_one_fetch(self, store):
        calls = []
        release = asyncio.Event()

        async def fetcher():
            calls.append(1)
            await release.wait()
            return "data"

        first = asyncio.ensure_future(store.fetch_query(("k",), fetcher))
        second = asyncio.ensure_future(store.fetch_query(("k",), fetcher))
        await asyncio.sleep(0)
        release.set()

        assert await asyncio.gather(first, second) == ["data", "data"]
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_retries_once_then_raises(self, store):
        attempts = []

        async def fetcher():
            attempts.append(1)
            raise RuntimeError("flaky")

        with pytest.raises(RuntimeError):
            await store.fetch_query(("k",), fetcher)
        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_validation_and_rate_limit_are_not_retried(self, store):
        attempts = []

        async def invalid():
            attempts.append("v")
            raise ValidationError("bad")

        async def limited():
            attempts.append("r")
            raise RateLimited(retry_after=5)

        with pytest.raises(ValidationError):
            await store.fetch_query(("a",), invalid)
        with pytest.raises(RateLimited):
            await store.fetch_query(("b",), limited)
        assert attempts == ["v", "r"]

    @pytest.mark.asyncio
    async def test_cancel_queries_aborts_reader_and_drops_late_response(self, store):
        started = asyncio.Event()

        async def slow():
            started.set()
            await asyncio.sleep(10)
            return "late"

        store.set_query_data(("admin-estimates",), "current")
        store.invalidate_queries(("admin-estimates",))
        reader = asyncio.ensure_future(store.fetch_query(("admin-estimates",), slow))
        await started.wait()

        assert await store.cancel_queries(("admin-estimates",)) == 1
        with pytest.raises(AbortError):
            await reader
        assert store.get_query_data(("admin-estimates",)) == "current"

    @pytest.mark.asyncio
    async def test_no_fetcher_registered(self, store):
        with pytest.raises(ValueError):
            await store.fetch_query(("unknown",))
