"""API Routers package

Routers are organized by feature domain.
"""

from . import collect_router

__all__ = [
    "collect_router",
]
