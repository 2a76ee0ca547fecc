"""
User and Contact Models

WordPress users and their GoHighLevel contact counterparts.
"""

from pydantic import BaseModel, Field
from typing import Optional, Any


class WPUser(BaseModel):
    """WordPress user (portal customer or admin)"""

    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    roles: list[str] = Field(default_factory=list)
    has_portal_access: bool = Field(default=False, alias="hasPortalAccess")
    ghl_contact_id: Optional[str] = Field(default=None, alias="ghlContactId")

    class Config:
        extra = "ignore"
        coerce_numbers_to_str = True
        populate_by_name = True

    @property
    def is_admin(self) -> bool:
        return "administrator" in self.roles


class GHLContact(BaseModel):
    """GoHighLevel Contact"""

    id: Optional[str] = None
    locationId: Optional[str] = None

    # Basic info
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    name: Optional[str] = None  # Full name
    email: Optional[str] = None
    phone: Optional[str] = None

    # Metadata
    source: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    dateAdded: Optional[str] = None
    dateUpdated: Optional[str] = None

    customFields: Optional[list[dict[str, Any]]] = Field(default_factory=list)

    class Config:
        extra = "ignore"
        coerce_numbers_to_str = True

    @property
    def display_name(self) -> str:
        if self.name:
            return self.name
        return " ".join(p for p in (self.firstName, self.lastName) if p) or (
            self.email or ""
        )


class GHLContactsResponse(BaseModel):
    """Response from GET /contacts"""

    contacts: list[GHLContact] = Field(default_factory=list)
    total: Optional[int] = None

    class Config:
        extra = "ignore"
