"""
Admin Queries

Read side of the admin data layer. Each query registers its fetcher with the
cache under a tuple key and reads through QueryCache.fetch_query, so
concurrent reads share one request and fresh data is served from memory.
The cache holds the raw JSON; callers get pydantic models.
"""

from typing import Any, Optional

from cheapalarms.admin.keys import (
    ADMIN_DASHBOARD,
    ADMIN_ESTIMATES,
    ADMIN_ESTIMATES_CHART,
    ADMIN_ESTIMATES_TRASH,
    ADMIN_HEALTH,
    ADMIN_INVOICES,
    ADMIN_LOGS,
    GHL_CONTACTS,
    WP_USERS,
    XERO_AUTHORIZE,
    XERO_STATUS,
    estimate_key,
    invoice_key,
)
from cheapalarms.cache import QueryCache
from cheapalarms.models import (
    Dashboard,
    Estimate,
    EstimatesPage,
    GHLContactsResponse,
    Invoice,
    InvoicesPage,
    TrashPage,
    WPUser,
)
from cheapalarms.services.transport import ApiClient, ensure_ok
from cheapalarms.utils.validators import require_id

LIST_STALE_TIME = 30.0
HEALTH_STALE_TIME = 10.0
LOGS_STALE_TIME = 5.0
CHART_STALE_TIME = 60.0
DASHBOARD_STALE_TIME = 120.0
XERO_STATUS_STALE_TIME = 60.0
XERO_AUTHORIZE_STALE_TIME = 300.0


def users_from_payload(payload: Any) -> list:
    """WordPress answers with a bare list or {users: [...]}"""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        return payload.get("users") or payload.get("items") or []
    return []


class AdminQueries:
    """Cached reads against the gateway /api/admin/* routes"""

    def __init__(self, cache: QueryCache, client: ApiClient):
        self.cache = cache
        self.client = client

    async def _read(self, key: tuple, path: str, params: Optional[dict], fallback: str, stale_time: float) -> Any:
        async def fetch() -> Any:
            return ensure_ok(await self.client.get(path, params=params), fallback)

        return await self.cache.fetch_query(key, fetch, stale_time=stale_time)

    # ========================================================================
    # Estimates
    # ========================================================================

    async def estimates(
        self,
        search: Optional[str] = None,
        status: Optional[str] = None,
        portal_status: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> EstimatesPage:
        params = {
            "search": search or None,
            "status": status or None,
            "portalStatus": portal_status or None,
            "page": page,
            "pageSize": page_size,
        }
        data = await self._read(
            ADMIN_ESTIMATES + (search, status, portal_status, page, page_size),
            "/api/admin/estimates",
            params,
            "Failed to load estimates",
            LIST_STALE_TIME,
        )
        return EstimatesPage.model_validate(data)

    async def trash(self, location_id: Optional[str] = None, limit: int = 100) -> TrashPage:
        data = await self._read(
            ADMIN_ESTIMATES_TRASH + (location_id, limit),
            "/api/admin/estimates/trash",
            {"locationId": location_id, "limit": limit},
            "Failed to load trash",
            LIST_STALE_TIME,
        )
        return TrashPage.model_validate(data)

    async def estimate(self, estimate_id: str, location_id: Optional[str] = None) -> Estimate:
        estimate_id = require_id(estimate_id, "estimateId")
        data = await self._read(
            estimate_key(estimate_id),
            f"/api/admin/estimates/{estimate_id}",
            {"locationId": location_id},
            "Failed to load estimate",
            LIST_STALE_TIME,
        )
        return Estimate.model_validate({"id": estimate_id, **data})

    # ========================================================================
    # Invoices
    # ========================================================================

    async def invoices(
        self,
        search: Optional[str] = None,
        status: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> InvoicesPage:
        data = await self._read(
            ADMIN_INVOICES + (search, status, page, page_size),
            "/api/admin/invoices",
            {"search": search or None, "status": status or None, "page": page, "pageSize": page_size},
            "Failed to load invoices",
            LIST_STALE_TIME,
        )
        return InvoicesPage.model_validate(data)

    async def invoice(self, invoice_id: str) -> Invoice:
        invoice_id = require_id(invoice_id, "invoiceId")
        data = await self._read(
            invoice_key(invoice_id),
            f"/api/admin/invoices/{invoice_id}",
            None,
            "Failed to load invoice",
            LIST_STALE_TIME,
        )
        return Invoice.model_validate(data.get("invoice", data))

    # ========================================================================
    # Users and contacts
    # ========================================================================

    async def users(self) -> list[WPUser]:
        async def fetch() -> Any:
            payload = await self.client.get("/api/admin/users")
            if isinstance(payload, dict):
                ensure_ok(payload, "Failed to load users")
            # Cached as a plain list so optimistic edits can filter it directly
            return users_from_payload(payload)

        data = await self.cache.fetch_query(WP_USERS, fetch, stale_time=LIST_STALE_TIME)
        return [WPUser.model_validate(user) for user in data]

    async def ghl_contacts(self, limit: int = 20, offset: Optional[int] = None) -> GHLContactsResponse:
        data = await self._read(
            GHL_CONTACTS + (limit, offset),
            "/api/ghl/contacts/list",
            {"limit": limit, "offset": offset},
            "Failed to load contacts",
            LIST_STALE_TIME,
        )
        return GHLContactsResponse.model_validate(data)

    async def health(self) -> dict:
        async def fetch() -> Any:
            return await self.client.get("/api/admin/health")

        return await self.cache.fetch_query(ADMIN_HEALTH, fetch, stale_time=HEALTH_STALE_TIME)

    # ========================================================================
    # Dashboard and logs
    # ========================================================================

    async def dashboard(self) -> Dashboard:
        data = await self._read(
            ADMIN_DASHBOARD,
            "/api/admin/dashboard",
            None,
            "Failed to load admin dashboard",
            DASHBOARD_STALE_TIME,
        )
        return Dashboard.model_validate(data)

    async def estimates_chart(self, period: str = "30d") -> dict:
        """Estimate counts over time; period is one of WordPress's ranges ('7d', '30d', ...)"""
        return await self._read(
            ADMIN_ESTIMATES_CHART + (period,),
            "/api/admin/estimates/chart",
            {"range": period},
            "Failed to fetch chart data",
            CHART_STALE_TIME,
        )

    async def logs(
        self,
        limit: int = 100,
        level: Optional[str] = None,
        search: Optional[str] = None,
        request_id: Optional[str] = None,
    ) -> dict:
        return await self._read(
            ADMIN_LOGS + (limit, level, search, request_id),
            "/api/admin/logs",
            {
                "limit": limit or None,
                "level": level or None,
                "search": search or None,
                "request_id": request_id or None,
            },
            "Failed to load logs",
            LOGS_STALE_TIME,
        )

    # ========================================================================
    # Xero
    # ========================================================================

    async def xero_status(self) -> dict:
        # Reported as-is; a disconnected account is not an error
        async def fetch() -> Any:
            return await self.client.get("/api/xero/status")

        return await self.cache.fetch_query(XERO_STATUS, fetch, stale_time=XERO_STATUS_STALE_TIME)

    async def xero_authorize(self) -> dict:
        """Authorization URL for connecting a Xero organisation"""

        async def fetch() -> Any:
            return await self.client.get("/api/xero/authorize")

        return await self.cache.fetch_query(
            XERO_AUTHORIZE, fetch, stale_time=XERO_AUTHORIZE_STALE_TIME
        )
