"""
Admin dashboard route

Unlike the thin proxies this endpoint aggregates several WordPress calls,
so it answers errors itself: 401/403 from WordPress are passed on, anything
else becomes a 500 carrying the message.
"""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response

from cheapalarms.api.proxy import error_response, method_not_allowed
from cheapalarms.api.routes import ROUTE_METHODS
from cheapalarms.error_handler import CheapAlarmsError, ErrorSeverity, RemoteError, slack_notifier
from cheapalarms.services.dashboard import get_dashboard_data
from cheapalarms.services.wordpress import wp_client

router = APIRouter(prefix="/api/admin", tags=["dashboard"])


async def dashboard(request: Request) -> Response:
    if request.method != "GET":
        return method_not_allowed(["GET"])
    if not wp_client.base_url:
        return error_response("WP API base not configured", 500)

    try:
        data = await get_dashboard_data(request.headers.get("cookie", ""), client=wp_client)
    except RemoteError as e:
        if e.status == 401:
            return error_response("Not authenticated", 401)
        if e.status == 403:
            return error_response("Forbidden", 403)
        logging.error(f"Dashboard failed: {e.message}")
        await slack_notifier.send_error(
            error=e, function_name="dashboard", severity=ErrorSeverity.MEDIUM
        )
        return error_response(e.message, 500)
    except CheapAlarmsError as e:
        logging.error(f"Dashboard failed: {e.message}")
        await slack_notifier.send_error(
            error=e, function_name="dashboard", severity=ErrorSeverity.HIGH
        )
        return error_response(e.message, 500)

    return JSONResponse({"ok": True, **data.model_dump()})


router.add_api_route("/dashboard", dashboard, methods=ROUTE_METHODS, include_in_schema=False)
