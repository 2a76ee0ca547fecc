"""Tests for the gateway state file and the scheduled health poll."""

from datetime import datetime, timezone

import httpx
import pytest

from cheapalarms import main
from cheapalarms.utils import StateManager


@pytest.fixture
def state(tmp_path) -> StateManager:
    return StateManager(str(tmp_path / "state.json"))


class TestStateManager:
    def test_missing_file_is_empty(self, state):
        assert state.get_stats() == {}
        assert state.get_last_health_check() is None

    def test_corrupt_file_falls_back_to_empty(self, state):
        state.file_path.write_text("{not json")

        assert state.get_stats() == {}

    def test_update_stats_merges(self, state):
        state.update_stats(a=1)
        state.update_stats(b=2)

        assert state.get_stats() == {"a": 1, "b": 2}

    def test_health_counters(self, state):
        checked_at = datetime(2026, 10, 19, 9, 30, tzinfo=timezone.utc)

        state.record_health_check(False, details="timeout", checked_at=checked_at)
        state.record_health_check(False, details="timeout", checked_at=checked_at)
        entry = state.record_health_check(True, details={"ok": True}, checked_at=checked_at)

        stats = state.get_stats()
        assert entry == {"ok": True, "checked_at": "2026-10-19T09:30:00+00:00", "details": {"ok": True}}
        assert stats["total_checks"] == 3
        assert stats["total_failures"] == 2
        assert stats["consecutive_failures"] == 0
        assert stats["last_healthy_at"] == "2026-10-19T09:30:00+00:00"
        assert state.get_last_health_check() == entry


class TestHealthPoll:
    @pytest.mark.asyncio
    async def test_healthy_answer_recorded(self, wordpress, state, monkeypatch):
        monkeypatch.setattr(main, "state_manager", state)
        wordpress.on("GET", "/ca/v1/health", {"ok": True, "version": "2.1"})

        entry = await main.check_wordpress_health()

        assert entry["ok"] is True
        assert state.get_stats()["consecutive_failures"] == 0

    @pytest.mark.asyncio
    async def test_unreachable_wordpress_recorded_and_swallowed(self, wordpress, state, monkeypatch):
        monkeypatch.setattr(main, "state_manager", state)
        wordpress.on("GET", "/ca/v1/health", exc=httpx.ConnectError("refused"))

        assert await main.check_wordpress_health() is None

        last = state.get_last_health_check()
        assert last["ok"] is False
        assert last["details"] == "Unable to connect to WordPress API."

    @pytest.mark.asyncio
    async def test_degraded_answer(self, wordpress, state, monkeypatch):
        monkeypatch.setattr(main, "state_manager", state)
        wordpress.on("GET", "/ca/v1/health", {"ok": False, "db": "down"})

        entry = await main.check_wordpress_health()

        assert entry["ok"] is False
        assert state.get_stats()["total_failures"] == 1


def test_stats_endpoint(http_client, state, monkeypatch):
    monkeypatch.setattr(main, "state_manager", state)
    state.record_health_check(True, details={"ok": True})

    response = http_client.get("/stats")

    assert response.status_code == 200
    assert response.json()["last_health_check"]["ok"] is True
    assert response.json()["stats"]["total_checks"] == 1
