"""
GoHighLevel API Client
Handles direct API requests to GoHighLevel for contact lookups and removal.
"""

import httpx
from typing import Optional
from cheapalarms.config import settings
from cheapalarms.error_handler import NetworkError, RemoteError
from cheapalarms.models import GHLContact, GHLContactsResponse


class GoHighLevelClient:
    """Client for GoHighLevel API"""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.transport = transport

    @property
    def base_url(self) -> str:
        return settings.ghl_api_base.rstrip("/")

    def _headers(self, include_location: bool = False) -> dict:
        """Get headers for API requests"""
        if not settings.ghl_api_token:
            raise RemoteError("Missing GHL_API_TOKEN", status=500)

        headers = {
            "Authorization": f"Bearer {settings.ghl_api_token}",
            "Content-Type": "application/json",
            "Version": "2021-07-28",
        }
        if include_location and settings.ghl_location_id:
            headers["LocationId"] = settings.ghl_location_id
        return headers

    async def _request(self, method: str, path: str, **kwargs) -> dict:
        async with httpx.AsyncClient(timeout=30.0, transport=self.transport) as client:
            try:
                response = await client.request(
                    method, f"{self.base_url}{path}", **kwargs
                )
            except httpx.TransportError as e:
                raise NetworkError("Unable to reach GoHighLevel", cause=e) from e

        try:
            data = response.json() if response.text else {}
        except ValueError:
            data = {"message": response.text}

        if not response.is_success:
            raise RemoteError(
                "GHL request failed",
                status=response.status_code,
                body=data,
                context={"path": path},
            )
        return data

    # ========================================================================
    # Contact Methods
    # ========================================================================

    async def list_contacts(
        self, limit: int = 20, query: Optional[str] = None
    ) -> GHLContactsResponse:
        """
        List contacts for the configured location.

        Args:
            limit: Page size
            query: Optional search (name, email or phone)
        """
        params = {"locationId": settings.ghl_location_id, "limit": limit}
        if query:
            params["query"] = query

        data = await self._request(
            "GET", "/contacts/", headers=self._headers(), params=params
        )
        total = data.get("total")
        if total is None and isinstance(data.get("meta"), dict):
            total = data["meta"].get("total")
        return GHLContactsResponse(contacts=data.get("contacts", []), total=total)

    async def get_contact(self, contact_id: str) -> Optional[GHLContact]:
        """
        Fetch one contact.

        Returns:
            GHLContact if found, None otherwise
        """
        try:
            data = await self._request(
                "GET", f"/contacts/{contact_id}", headers=self._headers()
            )
        except RemoteError as e:
            if e.status == 404:
                return None
            raise
        return GHLContact(**data.get("contact", data))

    async def delete_contact(self, contact_id: str) -> bool:
        """
        Delete a contact.

        Returns:
            True if GHL confirmed the delete
        """
        data = await self._request(
            "DELETE",
            f"/contacts/{contact_id}",
            headers=self._headers(include_location=True),
        )
        # GHL spells the flag "succeded"
        return bool(data.get("succeded", data.get("succeeded", True)))


# Global client instance
ghl_client = GoHighLevelClient()
