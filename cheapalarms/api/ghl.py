"""
Direct GoHighLevel routes (server-side token, never exposed to the browser)
"""

from typing import Optional

from fastapi import APIRouter, Query

from cheapalarms.api.proxy import error_response
from cheapalarms.error_handler import NetworkError, RemoteError
from cheapalarms.services.ghl_client import ghl_client

router = APIRouter(prefix="/api/ghl", tags=["ghl"])


@router.get("/contacts")
async def list_contacts(
    limit: int = Query(default=20, ge=1, le=100),
    query: Optional[str] = None,
):
    try:
        result = await ghl_client.list_contacts(limit=limit, query=query)
    except NetworkError as e:
        return error_response(e.message, 502)
    except RemoteError as e:
        return error_response(e.message, e.status or 502, details=e.body)

    return {"ok": True, **result.model_dump()}
