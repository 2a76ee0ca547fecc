"""
Estimate Models

Pydantic models for estimates as returned by the WordPress admin API.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field


class EstimateStatus(str, Enum):
    """Known estimate statuses. Unknown values are kept as plain strings."""

    DRAFT = "draft"
    SENT = "sent"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    UNDER_REVIEW = "under_review"
    CHANGES_REQUESTED = "changes_requested"
    INVOICED = "invoiced"
    EXPIRED = "expired"


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class Discount(BaseModel):
    """Discount applied to the estimate subtotal"""

    type: DiscountType = DiscountType.PERCENTAGE
    value: float = 0

    def apply(self, subtotal: float) -> float:
        if self.type == DiscountType.PERCENTAGE:
            reduction = subtotal * min(max(self.value, 0), 100) / 100
        else:
            reduction = min(max(self.value, 0), subtotal)
        return round(subtotal - reduction, 2)


class LineItem(BaseModel):
    """Single estimate line"""

    name: str = ""
    description: str = ""
    amount: float = 0
    qty: int = Field(default=1, validation_alias=AliasChoices("qty", "quantity"))
    currency: Optional[str] = None

    class Config:
        extra = "ignore"
        populate_by_name = True

    @property
    def line_total(self) -> float:
        return round(self.amount * self.qty, 2)


class EstimateContact(BaseModel):
    name: str = ""
    email: str = ""
    phone: str = ""

    class Config:
        extra = "ignore"


class Estimate(BaseModel):
    """Estimate as seen by the admin back-office"""

    id: str = Field(validation_alias=AliasChoices("id", "estimateId"))
    status: str = EstimateStatus.DRAFT.value
    title: Optional[str] = None
    location_id: Optional[str] = Field(default=None, alias="locationId")
    contact: EstimateContact = Field(default_factory=EstimateContact)
    items: list[LineItem] = Field(default_factory=list)
    discount: Discount = Field(default_factory=Discount)
    currency: str = "AUD"
    issue_date: Optional[str] = Field(default=None, alias="issueDate")
    expiry_date: Optional[str] = Field(default=None, alias="expiryDate")
    terms_notes: str = Field(default="", alias="termsNotes")

    # Soft-delete
    trashed: bool = False
    deleted_at: Optional[datetime] = Field(default=None, alias="deletedAt")

    class Config:
        extra = "ignore"
        coerce_numbers_to_str = True
        populate_by_name = True

    @property
    def known_status(self) -> Optional[EstimateStatus]:
        try:
            return EstimateStatus(self.status)
        except ValueError:
            return None

    def subtotal(self) -> float:
        return round(sum(item.line_total for item in self.items), 2)

    def total(self) -> float:
        return self.discount.apply(self.subtotal())

    def purge_after(self, retention_days: int) -> Optional[datetime]:
        """When a trashed estimate leaves the restore window"""
        if not self.trashed or self.deleted_at is None:
            return None
        deleted_at = self.deleted_at
        if deleted_at.tzinfo is None:
            deleted_at = deleted_at.replace(tzinfo=timezone.utc)
        return deleted_at + timedelta(days=retention_days)

    def is_restorable(self, retention_days: int, now: Optional[datetime] = None) -> bool:
        purge_at = self.purge_after(retention_days)
        if purge_at is None:
            return False
        return (now or datetime.now(timezone.utc)) < purge_at


class EstimatesPage(BaseModel):
    """Response from GET /ca/v1/admin/estimates"""

    items: list[Estimate] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = Field(default=20, alias="pageSize")

    class Config:
        extra = "ignore"
        populate_by_name = True


class TrashPage(BaseModel):
    """Response from GET /ca/v1/admin/estimates/trash"""

    items: list[Estimate] = Field(default_factory=list)
    count: int = 0

    class Config:
        extra = "ignore"
