"""
Query keys

Keys are tuples; the first element names the family so a whole family can
be cancelled, snapshotted or invalidated by prefix.
"""

from typing import Any

ADMIN_ESTIMATES = ("admin-estimates",)
ADMIN_ESTIMATES_TRASH = ("admin-estimates-trash",)
ADMIN_ESTIMATE = ("admin-estimate",)
ADMIN_INVOICES = ("admin-invoices",)
ADMIN_INVOICE = ("admin-invoice",)
WP_USERS = ("wp-users",)
GHL_CONTACTS = ("ghl-contacts",)
ADMIN_HEALTH = ("admin-health",)
ADMIN_DASHBOARD = ("admin-dashboard",)
ADMIN_LOGS = ("admin-logs",)
ADMIN_ESTIMATES_CHART = ("admin-estimates-chart",)
XERO_STATUS = ("xero-status",)
XERO_AUTHORIZE = ("xero-authorize",)


def estimate_key(estimate_id: Any) -> tuple:
    return ADMIN_ESTIMATE + (str(estimate_id),)


def invoice_key(invoice_id: Any) -> tuple:
    return ADMIN_INVOICE + (str(invoice_id),)
