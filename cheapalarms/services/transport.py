"""
Gateway API Client

Issues requests against the same-origin /api/* surface with the session
cookie attached, parses JSON and normalises failures into the error taxonomy.
"""

from typing import Any, Optional

import httpx

from cheapalarms.config import settings
from cheapalarms.error_handler import (
    ERROR_MESSAGES,
    InvalidResponseError,
    NetworkError,
    RateLimited,
    RemoteError,
)

BODY_METHODS = ("POST", "PUT", "PATCH", "DELETE")


def error_message(payload: Any, fallback: str) -> str:
    """Pick the backend's error text, in the order WordPress and the gateway use"""
    if isinstance(payload, dict):
        for key in ("err", "error", "message"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
    return fallback


def ensure_ok(payload: Any, fallback: str) -> dict:
    """
    Raise RemoteError unless the payload carries ok: true.

    WordPress answers some failures with HTTP 200 and ok: false.
    """
    if not isinstance(payload, dict) or payload.get("ok") is not True:
        raise RemoteError(error_message(payload, fallback), status=200, body=payload)
    return payload


class ApiClient:
    """Client for the gateway API with cookie-based authentication"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        cookies: Optional[dict] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url or settings.gateway_base_url
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            cookies=cookies,
            timeout=timeout or settings.api_timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self.client.aclose()

    async def request(
        self,
        path: str,
        method: str = "GET",
        body: Any = None,
        headers: Optional[dict] = None,
        params: Optional[dict] = None,
    ) -> Any:
        """
        Send a request and return the parsed JSON body.

        Args:
            path: API path (e.g. "/api/admin/estimates")
            method: HTTP method
            body: JSON-serialisable body, only sent for POST/PUT/PATCH/DELETE
            headers: Extra headers
            params: Query parameters; None values are dropped

        Returns:
            Parsed JSON, or None for 204 and empty bodies

        Raises:
            RemoteError: Non-2xx response
            RateLimited: 429 or a rate_limited error code
            InvalidResponseError: Body is not JSON
            NetworkError: No response was obtained
        """
        method = method.upper()
        query = {
            key: str(value) for key, value in (params or {}).items() if value is not None
        }
        request_headers = {"Content-Type": "application/json", **(headers or {})}

        try:
            response = await self.client.request(
                method,
                path,
                params=query or None,
                headers=request_headers,
                json=body if body is not None and method in BODY_METHODS else None,
            )
        except httpx.TimeoutException as e:
            raise NetworkError(ERROR_MESSAGES["timeout"], cause=e) from e
        except httpx.TransportError as e:
            raise NetworkError(str(e) or "Network request failed", cause=e) from e

        return self._parse(response)

    def _parse(self, response: httpx.Response) -> Any:
        if response.status_code == 204:
            return None

        raw = response.text
        content_type = response.headers.get("Content-Type", "")
        stripped = raw.strip()
        looks_json = "application/json" in content_type or stripped.startswith(("{", "["))

        if not stripped:
            payload = None
        elif looks_json:
            try:
                payload = response.json()
            except ValueError:
                raise InvalidResponseError(
                    f"Invalid JSON response: {raw[:200]}",
                    status=response.status_code,
                    body=raw[:200],
                )
        else:
            raise InvalidResponseError(
                f"Non-JSON response: {raw[:200]}",
                status=response.status_code,
                body=raw[:200],
            )

        if response.is_success:
            return payload

        body = payload if isinstance(payload, dict) else {}
        if response.status_code == 429 or body.get("code") == "rate_limited":
            raise RateLimited.from_response(
                body, status=response.status_code, headers=response.headers
            )

        raise RemoteError(
            error_message(body, f"HTTP {response.status_code}"),
            status=response.status_code,
            body=payload,
        )

    async def get(self, path: str, params: Optional[dict] = None) -> Any:
        return await self.request(path, "GET", params=params)

    async def post(self, path: str, body: Any = None, params: Optional[dict] = None) -> Any:
        return await self.request(path, "POST", body=body, params=params)

    async def put(self, path: str, body: Any = None) -> Any:
        return await self.request(path, "PUT", body=body)
