"""
Data models for the gateway and admin data layer
"""

from .estimates import (
    Discount,
    DiscountType,
    Estimate,
    EstimateContact,
    EstimatesPage,
    EstimateStatus,
    LineItem,
    TrashPage,
)
from .dashboard import ActivityItem, Dashboard, DashboardAlert, DashboardStat, ProductCounts
from .invoices import Invoice, InvoicesPage, XeroSyncState
from .gohighlevel import GHLContact, GHLContactsResponse, WPUser
from .results import (
    BulkResult,
    DeleteByEmailResult,
    DeletionSection,
    ItemError,
    Scope,
    ScopedResult,
    SystemResult,
)

__all__ = [
    "ActivityItem",
    "Dashboard",
    "DashboardAlert",
    "DashboardStat",
    "ProductCounts",
    "Discount",
    "DiscountType",
    "Estimate",
    "EstimateContact",
    "EstimatesPage",
    "EstimateStatus",
    "LineItem",
    "TrashPage",
    "Invoice",
    "InvoicesPage",
    "XeroSyncState",
    "GHLContact",
    "GHLContactsResponse",
    "WPUser",
    "BulkResult",
    "DeleteByEmailResult",
    "DeletionSection",
    "ItemError",
    "Scope",
    "ScopedResult",
    "SystemResult",
]
