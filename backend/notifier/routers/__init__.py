"""API routers."""
from .devices import router as devices_router
from .notifications import router as notifications_router
from .preferences import router as preferences_router

__all__ = ["devices_router", "notifications_router", "preferences_router"]
