"""
Admin data layer: cached queries and optimistic mutations
"""

from .keys import (
    ADMIN_DASHBOARD,
    ADMIN_ESTIMATE,
    ADMIN_ESTIMATES,
    ADMIN_ESTIMATES_CHART,
    ADMIN_ESTIMATES_TRASH,
    ADMIN_HEALTH,
    ADMIN_INVOICE,
    ADMIN_INVOICES,
    ADMIN_LOGS,
    GHL_CONTACTS,
    WP_USERS,
    XERO_AUTHORIZE,
    XERO_STATUS,
    estimate_key,
    invoice_key,
)
from .queries import AdminQueries
from .mutations import AdminMutations, drop_items
from .session import AdminSession

__all__ = [
    "ADMIN_DASHBOARD",
    "ADMIN_ESTIMATE",
    "ADMIN_ESTIMATES",
    "ADMIN_ESTIMATES_CHART",
    "ADMIN_ESTIMATES_TRASH",
    "ADMIN_HEALTH",
    "ADMIN_INVOICE",
    "ADMIN_INVOICES",
    "ADMIN_LOGS",
    "GHL_CONTACTS",
    "WP_USERS",
    "XERO_AUTHORIZE",
    "XERO_STATUS",
    "estimate_key",
    "invoice_key",
    "AdminQueries",
    "AdminMutations",
    "drop_items",
    "AdminSession",
]
