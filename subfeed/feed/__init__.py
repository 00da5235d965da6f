"""Feed aggregation module for YouTube RSS feeds."""

from .aggregator import (
    FEED_CACHE_KEY,
    FeedAggregator,
    SourceRef,
    annotate_watched,
    sort_entries,
)

__all__ = [
    "FEED_CACHE_KEY",
    "FeedAggregator",
    "SourceRef",
    "annotate_watched",
    "sort_entries",
]
