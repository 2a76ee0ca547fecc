"""
WordPress REST API Client (server side only)

Used by the gateway routes to reach WordPress with the caller's session
cookie. Browser-side code talks to the gateway through ApiClient instead.
"""

import logging
import re
from typing import Any, Optional
from urllib.parse import unquote

import httpx
from starlette.requests import cookie_parser

from cheapalarms.config import settings
from cheapalarms.error_handler import NetworkError, RemoteError
from cheapalarms.services.transport import error_message


def extract_token(cookie_header: str, cookie_name: Optional[str] = None) -> Optional[str]:
    """
    Pull the session token out of a raw Cookie header.

    Falls back to a regex scan when the header does not parse cleanly.
    """
    cookie_name = cookie_name or settings.token_cookie
    if not cookie_header:
        return None

    token = cookie_parser(cookie_header).get(cookie_name)
    if token:
        return token

    match = re.search(rf"(?:^|;\s*){re.escape(cookie_name)}=([^;]+)", cookie_header)
    if not match:
        return None
    return unquote(match.group(1).strip()) or None


class WordPressClient:
    """Client for the WordPress /wp-json API"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url
        self.transport = transport

    @property
    def base_url(self) -> str:
        return (self._base_url if self._base_url is not None else settings.wp_api_base).rstrip("/")

    def _client(self, timeout: Optional[float] = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=timeout or settings.api_timeout, transport=self.transport
        )

    def build_headers(
        self,
        cookie_header: str = "",
        nonce: Optional[str] = None,
    ) -> dict:
        """
        Headers for a proxied WordPress call.

        The raw Cookie header is always forwarded, even when it does not
        parse, so WordPress can read it on its side.
        """
        headers = {
            "Content-Type": "application/json",
            "Cookie": cookie_header or "",
        }

        token = extract_token(cookie_header)
        if token:
            headers["Authorization"] = f"Bearer {token}"

        if not settings.is_production:
            headers["X-CA-Dev"] = "1"

        if nonce:
            headers["X-WP-Nonce"] = nonce

        return headers

    async def forward(
        self,
        method: str,
        path: str,
        headers: dict,
        body: Any = None,
    ) -> httpx.Response:
        """
        Forward a request and hand back the raw response.

        Raises:
            NetworkError: WordPress could not be reached
        """
        async with self._client() as client:
            try:
                return await client.request(
                    method,
                    f"{self.base_url}{path}",
                    headers=headers,
                    json=body,
                )
            except httpx.TimeoutException as e:
                raise NetworkError(
                    "Request timed out. The server may be slow or unavailable.",
                    cause=e,
                    context={"path": path, "method": method},
                ) from e
            except httpx.TransportError as e:
                raise NetworkError(
                    "Unable to connect to WordPress API.",
                    cause=e,
                    context={"path": path, "method": method},
                ) from e

    async def wp_fetch(
        self,
        path: str,
        method: str = "GET",
        body: Any = None,
        cookie_header: str = "",
        timeout: Optional[float] = None,
    ) -> Any:
        """
        Call WordPress and return parsed JSON.

        Raises:
            ValueError: path does not start with '/'
            RemoteError: non-2xx answer
            NetworkError: WordPress could not be reached
        """
        if not path.startswith("/"):
            raise ValueError("wp_fetch expects path to start with '/'")

        headers = self.build_headers(cookie_header)
        async with self._client(timeout) as client:
            try:
                response = await client.request(
                    method, f"{self.base_url}{path}", headers=headers, json=body
                )
            except httpx.TimeoutException as e:
                raise NetworkError(
                    "Request timed out. The server may be slow or unavailable.", cause=e
                ) from e
            except httpx.TransportError as e:
                raise NetworkError("Unable to connect to WordPress API.", cause=e) from e

        try:
            payload = response.json()
        except ValueError:
            payload = {"message": response.text[:200]}

        if not response.is_success:
            raise RemoteError(
                error_message(payload, f"WP error {response.status_code}"),
                status=response.status_code,
                body=payload,
            )
        return payload

    # ========================================================================
    # Auth Methods
    # ========================================================================

    async def authenticate(self, username: str, password: str) -> dict:
        """Exchange credentials for a JWT via /ca/v1/auth/token"""
        return await self.wp_fetch(
            "/ca/v1/auth/token",
            method="POST",
            body={"username": username, "password": password},
            timeout=settings.auth_timeout,
        )

    async def get_auth_context(self, cookie_header: str) -> Optional[dict]:
        """
        Resolve the current user from /ca/v1/auth/me.

        WordPress is the only authority on the token; it is never decoded here.

        Returns:
            The user payload, or None when there is no session
        """
        if not extract_token(cookie_header):
            logging.debug("No session cookie on request")
            return None

        try:
            payload = await self.wp_fetch(
                "/ca/v1/auth/me",
                cookie_header=cookie_header,
                timeout=settings.auth_timeout,
            )
        except RemoteError as e:
            if e.status in (401, 403):
                return None
            raise

        if isinstance(payload, dict) and "user" in payload:
            return payload["user"]
        return payload

    async def health(self) -> dict:
        """Public health endpoint, used by the scheduled poll"""
        return await self.wp_fetch("/ca/v1/health")


# Global client instance
wp_client = WordPressClient()
