"""API routers for SubFeed."""

from subfeed.api.routes_channels import router as channels_router
from subfeed.api.routes_feed import router as feed_router
from subfeed.api.routes_health import router as health_router
from subfeed.api.routes_watched import router as watched_router

__all__ = [
    "channels_router",
    "feed_router",
    "health_router",
    "watched_router",
]
