"""
Gateway API routers
"""

from .auth import router as auth_router
from .dashboard import router as dashboard_router
from .ghl import router as ghl_router
from .routes import router as proxy_router

__all__ = ["auth_router", "dashboard_router", "ghl_router", "proxy_router"]
