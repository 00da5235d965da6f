"""RSS feed module for SubFeed."""

from .fetcher import (
    FeedUnavailableError,
    fetch_channel_feed,
    fetch_channel_name,
    parse_feed,
)
from .models import FeedEntry, ParsedFeed, WatchedFeedEntry

__all__ = [
    "FeedEntry",
    "FeedUnavailableError",
    "ParsedFeed",
    "WatchedFeedEntry",
    "fetch_channel_feed",
    "fetch_channel_name",
    "parse_feed",
]
