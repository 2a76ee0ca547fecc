"""
Session routes

The JWT issued by WordPress lives only in an httpOnly cookie; it is never
returned in a response body.
"""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from cheapalarms.api.proxy import error_response
from cheapalarms.config import settings
from cheapalarms.error_handler import (
    CheapAlarmsError,
    ErrorSeverity,
    NetworkError,
    RemoteError,
    with_error_handling,
)
from cheapalarms.services.wordpress import extract_token, wp_client

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login")
async def login(request: Request):
    try:
        data = await request.json()
    except ValueError:
        data = {}
    data = data if isinstance(data, dict) else {}

    username = data.get("username")
    password = data.get("password")
    if not username or not password:
        return error_response("Username and password are required.", 400)

    try:
        result = await wp_client.authenticate(username, password)
    except CheapAlarmsError as e:
        logging.info(f"Login failed for {username}: {e.message}")
        return error_response(e.message or "Authentication failed", 401)

    token = result.get("token") if isinstance(result, dict) else None
    if not token:
        return error_response("Authentication failed", 401)

    response = JSONResponse(
        {"ok": True, "user": result.get("user"), "expiresAt": result.get("expires_at")}
    )
    response.set_cookie(
        settings.token_cookie,
        token,
        max_age=result.get("expires_in") or 3600,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )
    return response


@router.post("/logout")
async def logout():
    response = JSONResponse({"ok": True})
    response.delete_cookie(settings.token_cookie, path="/")
    return response


@router.get("/me")
@with_error_handling(severity=ErrorSeverity.MEDIUM)
async def me(request: Request):
    cookie_header = request.headers.get("cookie", "")
    if not extract_token(cookie_header):
        return error_response("Not authenticated", 401)

    try:
        user = await wp_client.get_auth_context(cookie_header)
    except NetworkError:
        return error_response("Unable to reach WordPress", 503)
    except RemoteError as e:
        return error_response(e.message, e.status if e.status >= 400 else 502)

    if user is None:
        return error_response("Not authenticated", 401)
    return {"ok": True, "user": user}
