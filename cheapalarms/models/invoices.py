"""
Invoice Models
"""

from typing import Optional

from pydantic import BaseModel, Field


class XeroSyncState(BaseModel):
    """Xero mirror of a local invoice"""

    synced: bool = False
    xero_invoice_id: Optional[str] = Field(default=None, alias="xeroInvoiceId")
    last_synced_at: Optional[str] = Field(default=None, alias="lastSyncedAt")
    error: Optional[str] = None

    class Config:
        extra = "ignore"
        populate_by_name = True


class Invoice(BaseModel):
    """Invoice created from an accepted estimate"""

    id: str
    estimate_id: Optional[str] = Field(default=None, alias="estimateId")
    number: Optional[str] = None
    amount: float = 0
    currency: str = "AUD"
    status: str = "draft"
    xero: XeroSyncState = Field(default_factory=XeroSyncState)

    class Config:
        extra = "ignore"
        coerce_numbers_to_str = True
        populate_by_name = True

    @property
    def is_paid(self) -> bool:
        return self.status.lower() in ("paid", "paid_in_full")


class InvoicesPage(BaseModel):
    """Response from GET /ca/v1/admin/invoices"""

    items: list[Invoice] = Field(default_factory=list)
    total: int = 0

    class Config:
        extra = "ignore"
