"""API endpoints."""

from app.api.routes import get_engine, get_notifier, router

__all__ = [
    "get_engine",
    "get_notifier",
    "router",
]
