"""Tests for cached admin reads."""

import pytest

from cheapalarms.admin import ADMIN_HEALTH, ADMIN_LOGS, XERO_STATUS, estimate_key
from cheapalarms.error_handler import RemoteError, ValidationError


class TestEstimates:
    @pytest.mark.asyncio
    async def test_filters_become_query_params(self, session, backend):
        backend.on("GET", "/api/admin/estimates", {"ok": True, "items": [{"id": "e1"}], "total": 1})

        page = await session.queries.estimates(search="acme", status="sent", page=2)

        params = dict(backend.requests[0].url.params)
        assert params == {"search": "acme", "status": "sent", "page": "2", "pageSize": "20"}
        assert page.total == 1
        assert page.items[0].id == "e1"

    @pytest.mark.asyncio
    async def test_fresh_reads_are_served_from_cache(self, session, backend):
        backend.on("GET", "/api/admin/estimates", {"ok": True, "items": [], "total": 0})

        await session.queries.estimates()
        await session.queries.estimates()

        assert len(backend.requests) == 1

    @pytest.mark.asyncio
    async def test_ok_false_is_remote_error(self, session, backend):
        backend.on("GET", "/api/admin/estimates/trash", {"ok": False, "err": "No access"})

        with pytest.raises(RemoteError, match="No access"):
            await session.queries.trash()

    @pytest.mark.asyncio
    async def test_detail_keeps_requested_id(self, session, backend, cache):
        backend.on("GET", "/api/admin/estimates/e7", {"ok": True, "title": "Garage", "items": []})

        estimate = await session.queries.estimate("e7", location_id="loc-1")

        assert estimate.id == "e7"
        assert estimate.title == "Garage"
        assert backend.requests[0].url.params["locationId"] == "loc-1"
        assert cache.get_query_data(estimate_key("e7"))["title"] == "Garage"

    @pytest.mark.asyncio
    async def test_blank_detail_id(self, session, backend):
        with pytest.raises(ValidationError):
            await session.queries.estimate(" ")
        assert backend.requests == []


class TestOtherQueries:
    @pytest.mark.asyncio
    async def test_invoice_detail_unwraps(self, session, backend):
        backend.on("GET", "/api/admin/invoices/inv-1", {"ok": True, "invoice": {"id": "inv-1", "status": "paid"}})

        invoice = await session.queries.invoice("inv-1")

        assert invoice.is_paid

    @pytest.mark.asyncio
    async def test_bare_user_list(self, session, backend):
        backend.on("GET", "/api/admin/users", [{"id": 1, "email": "a@x.co"}])

        users = await session.queries.users()

        assert [user.email for user in users] == ["a@x.co"]

    @pytest.mark.asyncio
    async def test_health_is_cached_without_ok_check(self, session, backend, cache):
        backend.on("GET", "/api/admin/health", {"ok": False, "db": "down"})

        assert await session.queries.health() == {"ok": False, "db": "down"}
        assert cache.get_query_data(ADMIN_HEALTH) == {"ok": False, "db": "down"}


class TestDashboardAndLogs:
    @pytest.mark.asyncio
    async def test_dashboard(self, session, backend):
        backend.on(
            "GET",
            "/api/admin/dashboard",
            {
                "ok": True,
                "stats": [{"title": "Total estimates", "value": "3", "hint": "1 accepted"}],
                "alerts": [],
                "activity": [{"title": "Estimate Sent", "description": "#1001", "when": "5m ago"}],
            },
        )

        dashboard = await session.queries.dashboard()

        assert dashboard.stats[0].value == "3"
        assert dashboard.activity[0].description == "#1001"

    @pytest.mark.asyncio
    async def test_dashboard_refused(self, session, backend):
        backend.on("GET", "/api/admin/dashboard", {"ok": False, "err": "Forbidden"}, status=403)

        with pytest.raises(RemoteError, match="Forbidden"):
            await session.queries.dashboard()

    @pytest.mark.asyncio
    async def test_logs_filters(self, session, backend, cache):
        backend.on("GET", "/api/admin/logs", {"ok": True, "logs": [{"level": "error"}]})

        data = await session.queries.logs(limit=50, level="error", request_id="req-9")

        assert dict(backend.requests[0].url.params) == {
            "limit": "50",
            "level": "error",
            "request_id": "req-9",
        }
        assert data["logs"] == [{"level": "error"}]
        assert cache.keys(ADMIN_LOGS) == [ADMIN_LOGS + (50, "error", None, "req-9")]

    @pytest.mark.asyncio
    async def test_chart_range_defaults_to_thirty_days(self, session, backend):
        backend.on("GET", "/api/admin/estimates/chart", {"ok": True, "series": []})

        await session.queries.estimates_chart()

        assert backend.requests[0].url.params["range"] == "30d"


class TestXero:
    @pytest.mark.asyncio
    async def test_disconnected_status_is_not_an_error(self, session, backend, cache):
        backend.on("GET", "/api/xero/status", {"ok": True, "connected": False})

        assert await session.queries.xero_status() == {"ok": True, "connected": False}
        assert cache.get_query_data(XERO_STATUS) == {"ok": True, "connected": False}

    @pytest.mark.asyncio
    async def test_status_http_error(self, session, backend):
        backend.on("GET", "/api/xero/status", {"ok": False, "err": "Not authenticated"}, status=401)

        with pytest.raises(RemoteError, match="Not authenticated"):
            await session.queries.xero_status()

    @pytest.mark.asyncio
    async def test_authorize_url(self, session, backend):
        backend.on("GET", "/api/xero/authorize", {"ok": True, "url": "https://login.xero.test/a"})

        data = await session.queries.xero_authorize()

        assert data["url"] == "https://login.xero.test/a"
