"""
Dashboard Data

Builds the admin overview from the first page of WordPress estimates and
the product catalogue counts. Runs server side with the caller's cookie.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from cheapalarms.error_handler import CheapAlarmsError
from cheapalarms.models import (
    ActivityItem,
    Dashboard,
    DashboardAlert,
    DashboardStat,
    ProductCounts,
)
from cheapalarms.services.wordpress import WordPressClient, wp_client

ESTIMATES_PATH = "/ca/v1/admin/estimates?page=1&pageSize=100"
PRODUCT_PATHS = {
    "base": "/ca/v1/products/base",
    "addons": "/ca/v1/products/addons",
    "packages": "/ca/v1/products/packages",
}

ACCEPTED_STATUSES = ("accepted", "approved")
PENDING_ALERT_THRESHOLD = 10
ACTIVITY_LIMIT = 5

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """ISO-8601 (or WordPress 'Y-m-d H:i:s') to an aware datetime; naive means UTC"""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_time_ago(value: Any, now: Optional[datetime] = None) -> str:
    parsed = parse_timestamp(value)
    if parsed is None:
        return "Unknown"

    now = now or datetime.now(timezone.utc)
    minutes = int((now - parsed).total_seconds() // 60)
    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes}m ago"
    if minutes < 24 * 60:
        return f"{minutes // 60}h ago"
    if minutes < 7 * 24 * 60:
        return f"{minutes // (24 * 60)}d ago"
    return parsed.date().isoformat()


def _status(estimate: dict) -> str:
    return str(estimate.get("status") or "").lower()


def count_pending(estimates: list[dict]) -> int:
    return sum(1 for e in estimates if _status(e) and _status(e) not in ACCEPTED_STATUSES)


def count_accepted(estimates: list[dict]) -> int:
    return sum(1 for e in estimates if _status(e) in ACCEPTED_STATUSES)


def build_stats(estimates: list[dict], counts: ProductCounts) -> list[DashboardStat]:
    accepted = count_accepted(estimates)
    return [
        DashboardStat(title="Total estimates", value=str(len(estimates)), hint=f"{accepted} accepted"),
        DashboardStat(title="Pending estimates", value=str(count_pending(estimates)), hint="Awaiting approval"),
        DashboardStat(title="Accepted estimates", value=str(accepted), hint="Ready for installation"),
        DashboardStat(
            title="Products",
            value=f"{counts.base}/{counts.addons}/{counts.packages}",
            hint="base/addons/packages",
        ),
    ]


def build_alerts(estimates: list[dict]) -> list[DashboardAlert]:
    alerts = []
    pending = count_pending(estimates)
    if any(e.get("inviteToken") for e in estimates) and pending > PENDING_ALERT_THRESHOLD:
        alerts.append(
            DashboardAlert(
                title=f"{pending} estimates pending",
                description="Review and follow up on pending estimates.",
            )
        )
    if not estimates:
        alerts.append(
            DashboardAlert(
                title="No estimates found",
                description="Create your first estimate to get started.",
            )
        )
    return alerts


def _activity_description(estimate: dict) -> str:
    if estimate.get("estimateNumber"):
        return f"#{estimate['estimateNumber']}"
    if estimate.get("email"):
        return f"for {estimate['email']}"
    return f"ID: {estimate.get('id')}"


def build_activity(estimates: list[dict], now: Optional[datetime] = None) -> list[ActivityItem]:
    """Five most recently touched estimates, newest first"""

    def touched(estimate: dict) -> datetime:
        return parse_timestamp(estimate.get("updatedAt") or estimate.get("createdAt")) or EPOCH

    recent = sorted(estimates, key=touched, reverse=True)[:ACTIVITY_LIMIT]
    activity = []
    for estimate in recent:
        status = str(estimate.get("status") or "pending")
        activity.append(
            ActivityItem(
                title=f"Estimate {status[:1].upper()}{status[1:]}",
                description=_activity_description(estimate),
                when=format_time_ago(estimate.get("updatedAt") or estimate.get("createdAt"), now),
            )
        )
    return activity


async def fetch_product_counts(client: WordPressClient, cookie_header: str) -> ProductCounts:
    """Catalogue sizes; an endpoint that fails counts as zero"""

    async def safe_count(path: str) -> int:
        try:
            data = await client.wp_fetch(path, cookie_header=cookie_header)
        except CheapAlarmsError as e:
            logging.debug(f"Product count {path} unavailable: {e.message}")
            return 0
        if isinstance(data, list):
            return len(data)
        if isinstance(data, dict) and isinstance(data.get("items"), list):
            return len(data["items"])
        return 0

    counts = await asyncio.gather(*(safe_count(path) for path in PRODUCT_PATHS.values()))
    return ProductCounts(**dict(zip(PRODUCT_PATHS, counts)))


async def get_dashboard_data(
    cookie_header: str,
    client: Optional[WordPressClient] = None,
    now: Optional[datetime] = None,
) -> Dashboard:
    """
    Raises:
        RemoteError: the estimate list was refused (401/403 are passed through)
        NetworkError: WordPress could not be reached
    """
    client = client or wp_client
    payload = await client.wp_fetch(ESTIMATES_PATH, cookie_header=cookie_header)
    items = payload.get("items") if isinstance(payload, dict) else None
    estimates = [e for e in items or [] if isinstance(e, dict)]

    counts = await fetch_product_counts(client, cookie_header)

    return Dashboard(
        stats=build_stats(estimates, counts),
        alerts=build_alerts(estimates),
        activity=build_activity(estimates, now),
    )
