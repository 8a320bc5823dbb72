"""Routers package for FastAPI route handlers."""

from .callbacks import router as callbacks_router
from .client_ws import router as client_ws_router
from .fallback import router as fallback_router
from .status import router as status_router

__all__ = [
    "callbacks_router",
    "client_ws_router",
    "fallback_router",
    "status_router",
]
