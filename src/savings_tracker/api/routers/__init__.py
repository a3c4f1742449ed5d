"""API routers package."""

from savings_tracker.api.routers.assets import router as assets_router
from savings_tracker.api.routers.goals import router as goals_router
from savings_tracker.api.routers.periods import router as periods_router

__all__ = [
    "assets_router",
    "goals_router",
    "periods_router",
]
