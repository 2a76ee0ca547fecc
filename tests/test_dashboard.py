"""Tests for the aggregated admin dashboard."""

from datetime import datetime, timedelta, timezone

import httpx
import pytest

from cheapalarms.services.dashboard import build_activity, build_alerts, format_time_ago

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def ago(**delta) -> str:
    return (NOW - timedelta(**delta)).isoformat()


class TestTimeAgo:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (None, "Unknown"),
            ("not a date", "Unknown"),
            (ago(seconds=20), "Just now"),
            (ago(minutes=5), "5m ago"),
            (ago(hours=3), "3h ago"),
            (ago(days=2), "2d ago"),
            (ago(days=30), "2026-09-19"),
        ],
    )
    def test_buckets(self, value, expected):
        assert format_time_ago(value, NOW) == expected

    def test_wordpress_timestamps_are_utc(self):
        assert format_time_ago("2026-10-19 11:00:00", NOW) == "1h ago"


class TestBuilders:
    def test_activity_newest_first_and_capped(self):
        estimates = [
            {"id": f"e{i}", "status": "sent", "updatedAt": ago(hours=i)} for i in range(1, 8)
        ]
        estimates.append({"id": "new", "status": "accepted", "createdAt": ago(minutes=2), "email": "a@x.co"})

        activity = build_activity(estimates, NOW)

        assert len(activity) == 5
        assert activity[0].title == "Estimate Accepted"
        assert activity[0].description == "for a@x.co"
        assert activity[0].when == "2m ago"
        assert activity[1].description == "ID: e1"

    def test_pending_alert_needs_invites(self):
        pending = [{"id": f"e{i}", "status": "sent"} for i in range(11)]

        assert build_alerts(pending) == []

        pending[0]["inviteToken"] = "tok"
        assert build_alerts(pending)[0].title == "11 estimates pending"

    def test_empty_alert(self):
        assert build_alerts([])[0].title == "No estimates found"


class TestRoute:
    def test_dashboard(self, http_client, wordpress):
        wordpress.on(
            "GET",
            "/ca/v1/admin/estimates",
            {
                "ok": True,
                "items": [
                    {"id": "e1", "status": "accepted", "estimateNumber": "1001"},
                    {"id": "e2", "status": "sent"},
                    {"id": "e3", "status": "Approved"},
                ],
            },
        )
        wordpress.on("GET", "/ca/v1/products/base", [{"id": 1}, {"id": 2}])
        wordpress.on("GET", "/ca/v1/products/addons", {"items": [{"id": 3}]})
        wordpress.on("GET", "/ca/v1/products/packages", {"message": "boom"}, status=500)

        response = http_client.get("/api/admin/dashboard", headers={"Cookie": "ca_jwt=tok"})

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        stats = {stat["title"]: stat for stat in body["stats"]}
        assert stats["Total estimates"] == {"title": "Total estimates", "value": "3", "hint": "2 accepted"}
        assert stats["Pending estimates"]["value"] == "1"
        assert stats["Products"]["value"] == "2/1/0"
        assert body["alerts"] == []
        assert len(body["activity"]) == 3

        estimates_call = wordpress.calls("GET", "/ca/v1/admin/estimates")[0]
        assert dict(estimates_call.url.params) == {"page": "1", "pageSize": "100"}
        assert estimates_call.headers["authorization"] == "Bearer tok"

    @pytest.mark.parametrize(
        "status, expected", [(401, "Not authenticated"), (403, "Forbidden")]
    )
    def test_auth_failures_passed_on(self, http_client, wordpress, status, expected):
        wordpress.on("GET", "/ca/v1/admin/estimates", {"code": "rest_forbidden"}, status=status)

        response = http_client.get("/api/admin/dashboard")

        assert response.status_code == status
        assert response.json() == {"ok": False, "err": expected}

    def test_other_failures_are_500(self, http_client, wordpress):
        wordpress.on("GET", "/ca/v1/admin/estimates", exc=httpx.ConnectError("refused"))

        response = http_client.get("/api/admin/dashboard")

        assert response.status_code == 500
        assert response.json() == {"ok": False, "err": "Unable to connect to WordPress API."}

    def test_read_only(self, http_client, wordpress):
        response = http_client.post("/api/admin/dashboard")

        assert response.status_code == 405
        assert response.headers["allow"] == "GET"
        assert wordpress.requests == []
