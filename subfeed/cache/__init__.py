"""In-memory cache module for SubFeed."""

from .store import CacheEntry, TTLCache

__all__ = ["CacheEntry", "TTLCache"]
