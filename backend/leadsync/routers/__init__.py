"""API routers."""

from leadsync.routers.health import router as health_router
from leadsync.routers.sync import router as sync_router

__all__ = ["health_router", "sync_router"]
