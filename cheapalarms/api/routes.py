"""
Gateway route table

Every /api/admin/* route except the dashboard is a thin WordPress proxy.
Id segments use the path converter so traversal attempts such as
'../../etc' reach the id validation and are rejected with a 400 instead
of silently routing elsewhere.
"""

from fastapi import APIRouter

from cheapalarms.api.proxy import create_wp_proxy_handler, path_with_id
from cheapalarms.config import (
    CONFIRM_BULK_DELETE,
    CONFIRM_BULK_RESTORE,
    CONFIRM_DELETE,
    CONFIRM_DELETE_ALL,
    CONFIRM_EMPTY_TRASH,
)

# Registered for every method so disallowed ones get our 405, not the framework's
ROUTE_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

router = APIRouter(prefix="/api", tags=["proxy"])


def proxy_route(path: str, wp_path, methods=("GET",), confirm=None, **options) -> None:
    router.add_api_route(
        path,
        create_wp_proxy_handler(wp_path, allowed_methods=methods, confirm=confirm, **options),
        methods=ROUTE_METHODS,
        include_in_schema=False,
    )


# ============================================================================
# Estimates (static paths first, they would otherwise match {estimateId})
# ============================================================================

proxy_route("/admin/estimates", "/ca/v1/admin/estimates")
proxy_route("/admin/estimates/trash", "/ca/v1/admin/estimates/trash")
proxy_route(
    "/admin/estimates/chart",
    "/ca/v1/admin/estimates/chart",
    query_params=("range",),
)
proxy_route(
    "/admin/estimates/bulk-delete",
    "/ca/v1/admin/estimates/bulk-delete",
    methods=("POST",),
    confirm=CONFIRM_BULK_DELETE,
)
proxy_route(
    "/admin/estimates/bulk-restore",
    "/ca/v1/admin/estimates/bulk-restore",
    methods=("POST",),
    confirm=CONFIRM_BULK_RESTORE,
)
proxy_route(
    "/admin/estimates/trash/empty",
    "/ca/v1/admin/estimates/trash/empty",
    methods=("POST",),
    confirm=CONFIRM_EMPTY_TRASH,
)
proxy_route(
    "/admin/estimates/{estimateId:path}/delete",
    path_with_id("/ca/v1/admin/estimates/{id}/delete", "estimateId"),
    methods=("POST",),
    confirm=CONFIRM_DELETE,
)
for action in ("restore", "send", "sync", "create-invoice"):
    proxy_route(
        f"/admin/estimates/{{estimateId:path}}/{action}",
        path_with_id(f"/ca/v1/admin/estimates/{{id}}/{action}", "estimateId"),
        methods=("POST",),
    )
proxy_route(
    "/admin/estimates/{estimateId:path}",
    path_with_id("/ca/v1/admin/estimates/{id}", "estimateId"),
)
proxy_route("/estimate/update", "/ca/v1/estimate/update", methods=("PUT",))

# ============================================================================
# Invoices
# ============================================================================

proxy_route("/admin/invoices", "/ca/v1/admin/invoices")
proxy_route(
    "/admin/invoices/bulk-delete",
    "/ca/v1/admin/invoices/bulk-delete",
    methods=("POST",),
    confirm=CONFIRM_BULK_DELETE,
)
proxy_route(
    "/admin/invoices/{invoiceId:path}/delete",
    path_with_id("/ca/v1/admin/invoices/{id}/delete", "invoiceId"),
    methods=("POST",),
    confirm=CONFIRM_DELETE,
)
proxy_route(
    "/admin/invoices/{invoiceId:path}/sync",
    path_with_id("/ca/v1/admin/invoices/{id}/sync", "invoiceId"),
    methods=("POST",),
)
proxy_route(
    "/admin/invoices/{invoiceId:path}",
    path_with_id("/ca/v1/admin/invoices/{id}", "invoiceId"),
)

# ============================================================================
# Users, contacts and data removal
# ============================================================================

proxy_route("/admin/users", "/ca/v1/admin/users")
proxy_route(
    "/admin/users/bulk-delete",
    "/ca/v1/admin/users/bulk-delete",
    methods=("POST",),
    confirm=CONFIRM_BULK_DELETE,
)
proxy_route(
    "/admin/users/{userId:path}/delete",
    path_with_id("/ca/v1/admin/users/{id}/delete", "userId"),
    methods=("POST",),
    confirm=CONFIRM_DELETE,
)
proxy_route(
    "/admin/ghl/contacts/{contactId:path}/delete",
    path_with_id("/ca/v1/admin/ghl/contacts/{id}/delete", "contactId"),
    methods=("POST",),
    confirm=CONFIRM_DELETE,
)
proxy_route(
    "/admin/data/delete-by-email",
    "/ca/v1/admin/data/delete-by-email",
    methods=("POST",),
    confirm=CONFIRM_DELETE_ALL,
)
proxy_route(
    "/ghl/contacts/list",
    "/ca/v1/ghl/contacts/list",
    query_params=("limit", "offset"),
)

# ============================================================================
# Monitoring
# ============================================================================

proxy_route("/admin/health", "/ca/v1/health/detailed")
proxy_route(
    "/admin/logs",
    "/ca/v1/admin/logs",
    query_params=("limit", "level", "search", "request_id"),
)

# ============================================================================
# Xero
# ============================================================================

proxy_route("/xero/status", "/ca/v1/xero/status")
proxy_route("/xero/authorize", "/ca/v1/xero/authorize")
proxy_route("/xero/disconnect", "/ca/v1/xero/disconnect", methods=("POST",))
proxy_route("/xero/sync-payment", "/ca/v1/xero/sync-payment", methods=("POST",))
