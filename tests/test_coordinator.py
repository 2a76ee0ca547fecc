"""Tests for the optimistic mutation protocol."""

import asyncio

import pytest

from cheapalarms.cache import MutationState, OptimisticMutation, OptimisticUpdate, QueryCache
from cheapalarms.error_handler import NetworkError, RateLimited, RemoteError, ValidationError
from cheapalarms.notices import NoticeLevel, success_notice

LIST_KEY = ("admin-estimates", None, 1)
TRASH_KEY = ("admin-estimates-trash",)


class RemoveFromList(OptimisticMutation):
    """Drops ids from the list; the backend call is scripted per test"""

    name = "remove"
    failure_title = "Remove failed"

    def __init__(self, cache, outcome=None, gate: asyncio.Event = None):
        super().__init__(cache, client=None)
        self.outcome = outcome
        self.gate = gate
        self.seen_during_mutate = None

    def validate(self, ids):
        if not ids:
            raise ValidationError("Select at least one item", field="ids")

    def guard_ids(self, ids):
        return frozenset(ids)

    def optimistic_updates(self, ids):
        def transform(data):
            return {**data, "items": [i for i in data["items"] if i["id"] not in ids]}

        return [OptimisticUpdate(("admin-estimates",), transform)]

    def cancel_keys(self, ids):
        return [("admin-estimates",), TRASH_KEY]

    async def mutate(self, ids):
        self.seen_during_mutate = self.cache.get_query_data(LIST_KEY)
        if self.gate is not None:
            await self.gate.wait()
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        return self.outcome

    def success_notice(self, ids, result, partial):
        return success_notice(f"Removed {len(ids)}")


@pytest.fixture
def store() -> QueryCache:
    cache = QueryCache(stale_time=300, gc_time=600)
    cache.set_query_data(LIST_KEY, {"items": [{"id": "e1"}, {"id": "e2"}, {"id": "e3"}], "total": 3})
    cache.set_query_data(TRASH_KEY, {"items": [], "count": 0})
    return cache


class TestSuccess:
    @pytest.mark.asyncio
    async def test_optimistic_value_visible_then_keys_marked_stale(self, store):
        mutation = RemoveFromList(store, outcome={"ok": True})

        outcome = await mutation(("e1",))

        assert mutation.seen_during_mutate["items"] == [{"id": "e2"}, {"id": "e3"}]
        assert outcome.state == MutationState.SUCCESS
        assert outcome.notice.level == NoticeLevel.SUCCESS
        assert store.is_stale(LIST_KEY)
        assert store.is_stale(TRASH_KEY)

    @pytest.mark.asyncio
    async def test_state_transitions(self, store):
        mutation = RemoveFromList(store, outcome={"ok": True})
        states = []
        mutation.on_state(lambda state, ids: states.append(state))

        await mutation(("e1",))

        assert states == [MutationState.PENDING, MutationState.SUCCESS, MutationState.IDLE]


class TestFailure:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            RemoteError("Server exploded", status=500),
            NetworkError("Connection lost"),
            RuntimeError("bug in mutate"),
        ],
    )
    async def test_rollback_restores_pre_mutation_content(self, store, error):
        before = store.get_query_data(LIST_KEY)
        mutation = RemoveFromList(store, outcome=error)

        with pytest.raises(type(error)):
            await mutation(("e1", "e2"))

        assert store.get_query_data(LIST_KEY) == before
        assert not store.is_stale(LIST_KEY)

    @pytest.mark.asyncio
    async def test_rate_limited_remote_error_is_reclassified(self, store):
        mutation = RemoveFromList(
            store, outcome=RemoteError("slow down", status=429, body={"retry_after": 45})
        )

        with pytest.raises(RateLimited) as exc_info:
            await mutation(("e1",))

        assert exc_info.value.retry_after == 45
        assert mutation.last_notice.title == "Rate limit exceeded"
        assert "45 seconds" in mutation.last_notice.description

    @pytest.mark.asyncio
    async def test_cancellation_rolls_back_and_propagates(self, store):
        gate = asyncio.Event()
        mutation = RemoveFromList(store, outcome={"ok": True}, gate=gate)

        task = asyncio.ensure_future(mutation(("e1",)))
        await asyncio.sleep(0.01)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert len(store.get_query_data(LIST_KEY)["items"]) == 3
        assert not mutation.is_pending

    @pytest.mark.asyncio
    async def test_stale_rollback_is_dropped_when_newer_write_landed(self, store):
        gate = asyncio.Event()
        mutation = RemoveFromList(store, outcome=RemoteError("nope", status=500), gate=gate)

        task = asyncio.ensure_future(mutation(("e1",)))
        await asyncio.sleep(0.01)
        # Another writer lands while the mutation is in flight
        store.set_query_data(LIST_KEY, {"items": [{"id": "e9"}], "total": 1})
        gate.set()

        with pytest.raises(RemoteError):
            await task
        assert store.get_query_data(LIST_KEY) == {"items": [{"id": "e9"}], "total": 1}
        assert store.is_stale(LIST_KEY)

    @pytest.mark.asyncio
    async def test_transform_failing_midway_restores_earlier_writes(self, store):
        filtered_key = ("admin-estimates", "sent", 1)
        store.set_query_data(filtered_key, {"items": None, "total": 0})
        before = store.get_query_data(LIST_KEY)

        class StrictRemove(RemoveFromList):
            def optimistic_updates(self, ids):
                def transform(data):
                    # A list entry without items cannot be filtered
                    return {**data, "items": [i for i in data["items"] if i["id"] not in ids]}

                return [OptimisticUpdate(("admin-estimates",), transform)]

        mutation = StrictRemove(store, outcome={"ok": True})

        with pytest.raises(TypeError):
            await mutation(("e1",))

        assert store.get_query_data(LIST_KEY) == before
        assert store.get_query_data(filtered_key) == {"items": None, "total": 0}
        assert mutation.seen_during_mutate is None
        assert not mutation.is_pending


class TestGuards:
    @pytest.mark.asyncio
    async def test_validation_happens_before_any_cache_work(self, store):
        version = store.version(LIST_KEY)
        mutation = RemoveFromList(store, outcome={"ok": True})

        with pytest.raises(ValidationError):
            await mutation(())

        assert store.version(LIST_KEY) == version

    @pytest.mark.asyncio
    async def test_overlapping_submission_is_rejected(self, store):
        gate = asyncio.Event()
        mutation = RemoveFromList(store, outcome={"ok": True}, gate=gate)

        first = asyncio.ensure_future(mutation(("e1", "e2")))
        await asyncio.sleep(0.01)

        with pytest.raises(ValidationError, match="already in progress"):
            await mutation(("e2",))

        gate.set()
        await first
        assert not mutation.is_pending

    @pytest.mark.asyncio
    async def test_disjoint_targets_may_run_together(self, store):
        gate = asyncio.Event()
        mutation = RemoveFromList(store, outcome={"ok": True}, gate=gate)

        first = asyncio.ensure_future(mutation(("e1",)))
        second = asyncio.ensure_future(mutation(("e3",)))
        await asyncio.sleep(0.01)
        gate.set()

        await asyncio.gather(first, second)

    @pytest.mark.asyncio
    async def test_in_flight_fetch_is_cancelled_before_snapshot(self, store):
        started = asyncio.Event()

        async def slow_refetch():
            started.set()
            await asyncio.sleep(10)
            return {"items": [{"id": "stale"}], "total": 1}

        store.invalidate_queries(LIST_KEY)
        reader = asyncio.ensure_future(store.fetch_query(LIST_KEY, slow_refetch))
        await started.wait()

        mutation = RemoveFromList(store, outcome=RemoteError("nope", status=500))
        with pytest.raises(RemoteError):
            await mutation(("e1",))

        reader_result = await asyncio.gather(reader, return_exceptions=True)
        assert type(reader_result[0]).__name__ == "AbortError"
        assert [i["id"] for i in store.get_query_data(LIST_KEY)["items"]] == ["e1", "e2", "e3"]

    @pytest.mark.asyncio
    async def test_failing_state_listener_releases_guard(self, store):
        mutation = RemoveFromList(store, outcome={"ok": True})
        calls = []

        def listener(state, ids):
            calls.append(state)
            if state == MutationState.PENDING and len(calls) == 1:
                raise RuntimeError("listener blew up")

        mutation.on_state(listener)

        with pytest.raises(RuntimeError):
            await mutation(("e1",))
        assert not mutation.is_pending

        outcome = await mutation(("e1",))

        assert outcome.state == MutationState.SUCCESS
        assert [i["id"] for i in store.get_query_data(LIST_KEY)["items"]] == ["e2", "e3"]
