"""Feed aggregator for merging YouTube RSS feeds into one cached timeline."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Collection, Iterable, Sequence
from dataclasses import dataclass

from subfeed.cache import TTLCache
from subfeed.rss import FeedEntry, WatchedFeedEntry, fetch_channel_feed
from subfeed.schedule import ScheduleClock

logger = logging.getLogger(__name__)

FEED_CACHE_KEY = "aggregated_feed"

Fetcher = Callable[[str], Awaitable[list[FeedEntry]]]


@dataclass(frozen=True)
class SourceRef:
    """A followed channel as known to persistence."""

    channel_id: str
    thumbnail_url: str | None = None


def sort_entries(entries: Iterable[FeedEntry]) -> list[FeedEntry]:
    """Sort entries newest first.

    Python's sort is stable, so entries with equal published times keep
    their input order.
    """
    return sorted(entries, key=lambda e: e.published, reverse=True)


def tag_entries(entries: Iterable[FeedEntry], thumbnail_url: str | None) -> list[FeedEntry]:
    """Copy entries with the owning channel's thumbnail attached."""
    return [e.model_copy(update={"channel_thumbnail": thumbnail_url}) for e in entries]


def annotate_watched(
    entries: Iterable[FeedEntry], watched_ids: Collection[str]
) -> list[WatchedFeedEntry]:
    """Mark each entry with whether its video is in ``watched_ids``.

    The annotation is computed per read and never written back to the cache.
    """
    return [
        WatchedFeedEntry(**e.model_dump(), watched=e.video_id in watched_ids)
        for e in entries
    ]


class FeedAggregator:
    """Owns the cached aggregate feed and keeps it consistent.

    The aggregate is cached until the next scheduled update. Adding or
    removing a channel patches the cached aggregate in place of throwing it
    away, so a membership change does not re-fetch every other channel.
    """

    def __init__(
        self,
        cache: TTLCache,
        clock: ScheduleClock,
        fetcher: Fetcher = fetch_channel_feed,
        cache_key: str = FEED_CACHE_KEY,
        fetch_timeout: float = 15.0,
    ):
        self.cache = cache
        self.clock = clock
        self._fetcher = fetcher
        self._cache_key = cache_key
        self._fetch_timeout = fetch_timeout

    def _store(self, entries: list[FeedEntry]) -> None:
        self.cache.set(self._cache_key, entries, self.clock.ms_until_next_update())

    def cached(self) -> list[FeedEntry] | None:
        """Return the cached aggregate, or None if there is no valid entry."""
        return self.cache.get(self._cache_key)

    async def _fetch_one(self, channel_id: str) -> list[FeedEntry]:
        return await asyncio.wait_for(self._fetcher(channel_id), self._fetch_timeout)

    async def get_aggregate(self, sources: Sequence[SourceRef]) -> list[FeedEntry]:
        """Return the merged feed for ``sources``, newest first.

        On a cache hit the stored list is returned untouched. On a miss
        every channel is fetched concurrently; a channel that fails or
        times out contributes nothing.
        """
        if not sources:
            return []

        cached = self.cached()
        if cached is not None:
            return cached

        results = await asyncio.gather(
            *(self._fetch_one(s.channel_id) for s in sources),
            return_exceptions=True,
        )

        merged: list[FeedEntry] = []
        for source, result in zip(sources, results):
            if isinstance(result, BaseException):
                logger.warning(
                    "Dropping channel %s from aggregate: %r", source.channel_id, result
                )
                continue
            merged.extend(tag_entries(result, source.thumbnail_url))

        entries = sort_entries(merged)
        self._store(entries)
        logger.info(
            "Aggregated %d entries from %d channels", len(entries), len(sources)
        )
        return entries

    async def on_source_added(
        self, channel_id: str, thumbnail_url: str | None = None
    ) -> None:
        """Merge a newly followed channel into the cached aggregate.

        Does nothing without a valid cached aggregate; the next
        ``get_aggregate`` miss will include the channel anyway.
        """
        if self.cached() is None:
            return

        try:
            fresh = tag_entries(await self._fetch_one(channel_id), thumbnail_url)
        except Exception:
            logger.warning("Could not fetch new channel %s", channel_id, exc_info=True)
            fresh = []

        # Re-read: the cache may have expired or been replaced during the fetch
        current = self.cached()
        if current is None:
            return

        kept = [e for e in current if e.channel_id != channel_id]
        self._store(sort_entries(kept + fresh))
        logger.info("Merged %d entries for channel %s", len(fresh), channel_id)

    async def on_source_removed(self, channel_id: str) -> None:
        """Drop an unfollowed channel's entries from the cached aggregate."""
        current = self.cached()
        if current is None:
            return

        self._store([e for e in current if e.channel_id != channel_id])
        logger.info("Removed channel %s from cached aggregate", channel_id)

    def invalidate(self) -> None:
        """Discard the cached aggregate."""
        self.cache.invalidate(self._cache_key)
