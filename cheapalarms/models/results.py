"""
Mutation Result Models

Shapes returned by the destructive WordPress admin endpoints, plus the
scope enum that selects which backend system(s) an operation targets.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator


class Scope(str, Enum):
    """Which backend system(s) a destructive operation targets"""

    LOCAL = "local"
    GHL = "ghl"
    BOTH = "both"

    @property
    def systems(self) -> tuple[str, ...]:
        if self is Scope.LOCAL:
            return ("local",)
        if self is Scope.GHL:
            return ("ghl",)
        return ("local", "ghl")

    @property
    def touches_local(self) -> bool:
        return "local" in self.systems


class ItemError(BaseModel):
    """Per-item failure inside a bulk response"""

    id: str = ""
    message: str = Field(
        default="Unknown error", validation_alias=AliasChoices("message", "error", "err")
    )

    class Config:
        extra = "ignore"
        populate_by_name = True

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        return "" if value is None else str(value)


class BulkResult(BaseModel):
    """Response from bulk-delete, bulk-restore and empty-trash endpoints"""

    ok: bool = False
    deleted: int = 0
    restored: int = 0
    errors: list[ItemError] = Field(default_factory=list)
    error: Optional[str] = Field(default=None, validation_alias=AliasChoices("error", "err"))

    class Config:
        extra = "ignore"
        populate_by_name = True

    @property
    def succeeded(self) -> int:
        return self.deleted + self.restored

    @property
    def is_partial(self) -> bool:
        return len(self.errors) > 0


class SystemResult(BaseModel):
    """Outcome for one backend system (local WordPress or GHL)"""

    ok: bool = False
    found: Optional[bool] = None
    deleted: Any = None
    error: Optional[str] = Field(default=None, validation_alias=AliasChoices("error", "err"))

    class Config:
        extra = "ignore"
        populate_by_name = True


class ScopedResult(BaseModel):
    """Response from single-item delete endpoints with nested per-system flags"""

    ok: bool = False
    local: Optional[SystemResult] = None
    ghl: Optional[SystemResult] = None
    error: Optional[str] = Field(default=None, validation_alias=AliasChoices("error", "err"))

    class Config:
        extra = "ignore"
        populate_by_name = True

    def system(self, name: str) -> SystemResult:
        return getattr(self, name) or SystemResult()

    def succeeded_systems(self, scope: Scope) -> list[str]:
        return [name for name in scope.systems if self.system(name).ok]

    def failed_systems(self, scope: Scope) -> list[dict[str, str]]:
        return [
            {
                "id": name,
                "message": self.system(name).error or f"{name} delete failed",
            }
            for name in scope.systems
            if not self.system(name).ok
        ]

    def is_success(self, scope: Scope) -> bool:
        """Top-level ok and every requested system ok"""
        return self.ok and not self.failed_systems(scope)

    def first_error(self) -> Optional[str]:
        return self.error or self.system("ghl").error or self.system("local").error


class DeletionSection(BaseModel):
    """One section of a delete-by-email response"""

    found: Optional[bool] = None
    ok: Optional[bool] = None
    deleted: Any = None
    errors: list[ItemError] = Field(default_factory=list)
    error: Optional[str] = None

    class Config:
        extra = "ignore"

    @property
    def failed(self) -> bool:
        """A missing record is not a failure; a found record that was not removed is."""
        if self.errors:
            return True
        return bool(self.found) and self.ok is False


class DeleteByEmailResult(BaseModel):
    """Response from POST /ca/v1/admin/data/delete-by-email"""

    ok: bool = False
    contact: DeletionSection = Field(default_factory=DeletionSection)
    estimates: DeletionSection = Field(default_factory=DeletionSection)
    invoices: DeletionSection = Field(default_factory=DeletionSection)
    wordpress_user: DeletionSection = Field(
        default_factory=DeletionSection, alias="wordpressUser"
    )
    correlation_id: Optional[str] = Field(default=None, alias="correlationId")
    error: Optional[str] = Field(default=None, validation_alias=AliasChoices("error", "err"))

    class Config:
        extra = "ignore"
        populate_by_name = True

    def failures(self) -> list[dict[str, str]]:
        failures = []
        if self.contact.failed:
            failures.append(
                {"id": "contact", "message": f"Contact: {self.contact.error or 'delete failed'}"}
            )
        if self.estimates.errors:
            failures.append(
                {"id": "estimates", "message": f"{len(self.estimates.errors)} estimate(s) failed"}
            )
        if self.invoices.errors:
            failures.append(
                {"id": "invoices", "message": f"{len(self.invoices.errors)} invoice(s) failed"}
            )
        if self.wordpress_user.failed:
            failures.append(
                {"id": "wordpressUser", "message": "WordPress user deletion failed"}
            )
        return failures

    def summary(self) -> list[str]:
        parts = []
        if self.contact.deleted:
            parts.append("Contact")
        if isinstance(self.estimates.deleted, int) and self.estimates.deleted > 0:
            parts.append(f"{self.estimates.deleted} estimate(s)")
        if isinstance(self.invoices.deleted, int) and self.invoices.deleted > 0:
            parts.append(f"{self.invoices.deleted} invoice(s)")
        if self.wordpress_user.deleted:
            parts.append("WordPress user")
        return parts
