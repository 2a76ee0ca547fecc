"""
WordPress Proxy

Builds FastAPI endpoints that forward same-origin /api/* calls to the
WordPress REST API. The browser never sees WordPress directly: the session
cookie is read here and turned into a Bearer token for the backend.
"""

import json
import logging
from typing import Any, Callable, Optional, Sequence, Union
from urllib.parse import quote, urlencode

from fastapi import Request
from fastapi.responses import JSONResponse, Response

from cheapalarms.error_handler import ErrorSeverity, NetworkError, ValidationError, slack_notifier
from cheapalarms.services.wordpress import WordPressClient, wp_client
from cheapalarms.utils.validators import require_safe_id

WpPath = Union[str, Callable[[Request], str]]
Transform = Callable[[Any], Any]

BODY_METHODS = ("POST", "PUT", "PATCH")


def error_response(message: str, status_code: int, **extra) -> JSONResponse:
    return JSONResponse({"ok": False, "err": message, **extra}, status_code=status_code)


def method_not_allowed(allowed: Sequence[str]) -> JSONResponse:
    return JSONResponse(
        {"ok": False, "err": "Method not allowed"},
        status_code=405,
        headers={"Allow": ", ".join(allowed)},
    )


def require_path_id(request: Request, name: str) -> str:
    """
    Read an identifier from the route (or query string) for use in a backend path.

    Raises:
        ValidationError: missing, given more than once, or not alphanumeric/hyphen
    """
    # Route matching stops at a decoded newline, so the captured id alone can look clean
    if any(ord(char) < 32 or ord(char) == 127 for char in request.scope["path"]):
        raise ValidationError(
            f"Invalid {name} format. Only alphanumeric characters and hyphens are allowed.",
            field=name,
        )
    value = request.path_params.get(name)
    if value is None:
        values = request.query_params.getlist(name)
        if len(values) > 1:
            raise ValidationError(f"Invalid {name}", field=name)
        value = values[0] if values else None
    return require_safe_id(value, name)


def path_with_id(template: str, name: str) -> Callable[[Request], str]:
    """Backend path builder for templates like '/ca/v1/admin/estimates/{id}/delete'"""

    def build(request: Request) -> str:
        return template.format(id=quote(require_path_id(request, name), safe=""))

    return build


async def read_json_body(request: Request) -> Any:
    if request.method not in BODY_METHODS:
        return None
    raw = await request.body()
    if not raw.strip():
        return None
    try:
        return json.loads(raw)
    except ValueError:
        raise ValidationError("Request body must be valid JSON", field="body")


def build_query(request: Request, allowed: Optional[Sequence[str]] = None) -> str:
    items = [
        (key, value)
        for key, value in request.query_params.multi_items()
        if allowed is None or key in allowed
    ]
    return urlencode(items)


async def proxy_to_wordpress(
    request: Request,
    wp_path: str,
    body: Any = None,
    transform_request: Optional[Transform] = None,
    transform_response: Optional[Transform] = None,
    query_params: Optional[Sequence[str]] = None,
    client: Optional[WordPressClient] = None,
) -> Response:
    """
    Forward one request to WordPress and relay status and JSON verbatim.

    Args:
        wp_path: Backend path, already validated
        body: Parsed JSON body (forwarded for POST/PUT/PATCH)
        query_params: Query keys forwarded on GET; None forwards all
    """
    client = client or wp_client
    if not client.base_url:
        return error_response("WP API base not configured", 500)

    method = request.method
    final_path = wp_path
    if method == "GET":
        query = build_query(request, query_params)
        if query:
            final_path = f"{wp_path}{'&' if '?' in wp_path else '?'}{query}"

    headers = client.build_headers(
        request.headers.get("cookie", ""), request.headers.get("x-wp-nonce")
    )

    payload = None
    if method in BODY_METHODS and body is not None:
        payload = transform_request(body) if transform_request else body

    try:
        response = await client.forward(method, final_path, headers, payload)
    except NetworkError as e:
        logging.error(f"Proxy {method} {final_path} failed: {e.message}")
        await slack_notifier.send_error(
            error=e,
            function_name="proxy_to_wordpress",
            severity=ErrorSeverity.HIGH,
            context={"method": method, "path": final_path},
        )
        return error_response("Failed to proxy request", 500)

    if response.status_code == 204 or not response.content:
        return Response(status_code=response.status_code)

    try:
        data = response.json()
    except ValueError as e:
        logging.warning(f"Non-JSON answer from WordPress for {final_path}: {response.status_code}")
        return error_response(
            f"Invalid JSON response from WordPress API: {e}",
            response.status_code,
            details=response.text[:200],
        )

    if transform_response:
        data = transform_response(data)
    return JSONResponse(data, status_code=response.status_code)


def create_wp_proxy_handler(
    wp_path: WpPath,
    allowed_methods: Sequence[str] = ("GET", "POST"),
    confirm: Optional[str] = None,
    transform_request: Optional[Transform] = None,
    transform_response: Optional[Transform] = None,
    query_params: Optional[Sequence[str]] = None,
    client: Optional[WordPressClient] = None,
):
    """
    Build an endpoint proxying to wp_path.

    Method, path id and confirmation token are all checked before anything
    is sent to WordPress.

    Args:
        wp_path: Static backend path, or a function of the request
        allowed_methods: Anything else gets 405 with an Allow header
        confirm: Literal token POST bodies must carry as {"confirm": token}
    """
    allowed = [method.upper() for method in allowed_methods]

    async def handler(request: Request) -> Response:
        if request.method not in allowed:
            return method_not_allowed(allowed)

        try:
            path = wp_path(request) if callable(wp_path) else wp_path
            body = await read_json_body(request)
            if confirm and request.method == "POST":
                if not isinstance(body, dict) or body.get("confirm") != confirm:
                    raise ValidationError(
                        f'Confirmation required: send {{"confirm": "{confirm}"}}',
                        field="confirm",
                    )
        except ValidationError as e:
            logging.info(f"Rejected {request.method} {request.url.path}: {e.message}")
            return error_response(e.message, 400)

        return await proxy_to_wordpress(
            request,
            path,
            body,
            transform_request=transform_request,
            transform_response=transform_response,
            query_params=query_params,
            client=client,
        )

    return handler
