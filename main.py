"""SubFeed - Main application entry point."""

from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.middleware.base import BaseHTTPMiddleware

from subfeed.api import channels_router, feed_router, health_router, watched_router
from subfeed.auth import router as auth_router
from subfeed.cache import TTLCache
from subfeed.config import Settings, get_settings
from subfeed.db import init_db
from subfeed.feed import FeedAggregator
from subfeed.logging import setup_logging
from subfeed.schedule import ScheduleClock
from subfeed.youtube import ChannelResolver


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware to add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"

        # Prevent clickjacking attacks
        response.headers["X-Frame-Options"] = "DENY"

        # Thumbnails are served straight from YouTube's image hosts
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; "
            "script-src 'self' 'unsafe-inline'; "
            "style-src 'self' 'unsafe-inline'; "
            "img-src 'self' data: https://i.ytimg.com https://yt3.googleusercontent.com; "
            "font-src 'self'; "
            "connect-src 'self'; "
            "frame-ancestors 'none'"
        )

        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        return response


def build_aggregator(settings: Settings) -> FeedAggregator:
    """Create the feed aggregator with its own cache and schedule clock."""
    clock = ScheduleClock(settings.schedule_timezone, settings.update_hours)
    return FeedAggregator(
        cache=TTLCache(),
        clock=clock,
        cache_key=settings.feed_cache_key,
        fetch_timeout=settings.fetch_timeout_seconds,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    settings = get_settings()
    setup_logging()
    await init_db()

    # The feed cache lives exactly as long as the application
    app.state.aggregator = build_aggregator(settings)
    app.state.resolver = ChannelResolver(timeout=settings.fetch_timeout_seconds)
    yield
    app.state.aggregator.cache.invalidate_all()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="SubFeed",
        description="A single chronological feed of the YouTube channels you follow",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Configure rate limiting
    limiter = Limiter(key_func=get_remote_address)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Add security headers middleware
    app.add_middleware(SecurityHeadersMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_origin],
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Accept"],
    )

    # Include routers
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(channels_router)
    app.include_router(feed_router)
    app.include_router(watched_router)

    # Mount static files (built frontend) if static directory exists
    static_dir = Path(__file__).parent / "static"
    if static_dir.exists():
        app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")

    return app


app = create_app()


def main():
    """Entry point for running the application."""
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )


if __name__ == "__main__":
    main()
