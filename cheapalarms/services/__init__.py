"""
Service modules for API clients
"""

from .transport import ApiClient, ensure_ok
from .wordpress import WordPressClient, wp_client
from .ghl_client import GoHighLevelClient, ghl_client

__all__ = [
    "ApiClient",
    "ensure_ok",
    "WordPressClient",
    "wp_client",
    "GoHighLevelClient",
    "ghl_client",
]
