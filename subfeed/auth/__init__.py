"""Authentication module for SubFeed."""

from subfeed.auth.router import require_session, router

__all__ = ["router", "require_session"]
