"""Tests for feed aggregation and the schedule-aligned aggregate cache."""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock
from zoneinfo import ZoneInfo

import pytest

from subfeed.cache import TTLCache
from subfeed.feed import FeedAggregator, SourceRef, annotate_watched, sort_entries
from subfeed.rss import parse_feed
from subfeed.rss.models import FeedEntry
from subfeed.schedule import ScheduleClock

SAO_PAULO = ZoneInfo("America/Sao_Paulo")
BASE = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


def make_entry(
    video_id: str,
    channel_id: str = "UC_test",
    hours_ago: float = 0,
) -> FeedEntry:
    """Helper to create a FeedEntry for testing."""
    return FeedEntry(
        video_id=video_id,
        title=f"Video {video_id}",
        link=f"https://www.youtube.com/watch?v={video_id}",
        thumbnail=f"https://i.ytimg.com/vi/{video_id}/hqdefault.jpg",
        published=BASE - timedelta(hours=hours_ago),
        channel_id=channel_id,
        channel_name=f"Channel {channel_id}",
    )


class FakeTime:
    """Shared fake time source for the schedule clock and the cache."""

    def __init__(self, start: datetime):
        self.current = start

    def now(self) -> datetime:
        return self.current

    def time(self) -> float:
        return self.current.timestamp()

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


def make_fetcher(feeds: dict[str, list[FeedEntry]]) -> AsyncMock:
    """Fetcher returning canned entries per channel; unknown channels raise."""

    async def _fetch(channel_id: str) -> list[FeedEntry]:
        if channel_id not in feeds:
            raise RuntimeError(f"no feed for {channel_id}")
        return feeds[channel_id]

    return AsyncMock(side_effect=_fetch)


@pytest.fixture
def fake_time():
    # 07:00 in Sao Paulo: one hour before the 08:00 update
    return FakeTime(datetime(2024, 6, 15, 7, 0, tzinfo=SAO_PAULO))


@pytest.fixture
def feeds():
    return {
        "UC_a": [make_entry("a1", "UC_a", 1), make_entry("a2", "UC_a", 5)],
        "UC_b": [make_entry("b1", "UC_b", 2), make_entry("b2", "UC_b", 3)],
        "UC_c": [make_entry("c1", "UC_c", 0)],
    }


def build_aggregator(fake_time: FakeTime, fetcher, fetch_timeout: float = 1.0):
    clock = ScheduleClock("America/Sao_Paulo", [8, 20], now=fake_time.now)
    cache = TTLCache(clock=fake_time.time)
    return FeedAggregator(cache, clock, fetcher=fetcher, fetch_timeout=fetch_timeout)


def sources(*channel_ids: str) -> list[SourceRef]:
    return [SourceRef(channel_id=cid) for cid in channel_ids]


class TestSortEntries:
    """Tests for sort_entries."""

    def test_newest_first(self):
        """Entries are ordered by published descending."""
        items = [make_entry("old", hours_ago=10), make_entry("new", hours_ago=1)]
        assert [e.video_id for e in sort_entries(items)] == ["new", "old"]

    def test_equal_timestamps_keep_input_order(self):
        """Ties keep their relative input order."""
        items = [
            make_entry("first", hours_ago=2),
            make_entry("newest", hours_ago=0),
            make_entry("second", hours_ago=2),
            make_entry("third", hours_ago=2),
        ]
        result = [e.video_id for e in sort_entries(items)]
        assert result == ["newest", "first", "second", "third"]


class TestGetAggregate:
    """Tests for FeedAggregator.get_aggregate."""

    @pytest.mark.asyncio
    async def test_empty_sources_skip_cache(self, fake_time, feeds):
        """No channels means no fetch and no cache entry."""
        fetcher = make_fetcher(feeds)
        aggregator = build_aggregator(fake_time, fetcher)

        result = await aggregator.get_aggregate([])

        assert result == []
        fetcher.assert_not_called()
        assert len(aggregator.cache) == 0

    @pytest.mark.asyncio
    async def test_miss_merges_and_sorts(self, fake_time, feeds):
        """All channels are fetched and merged newest first."""
        fetcher = make_fetcher(feeds)
        aggregator = build_aggregator(fake_time, fetcher)

        result = await aggregator.get_aggregate(sources("UC_a", "UC_b", "UC_c"))

        assert [e.video_id for e in result] == ["c1", "a1", "b1", "b2", "a2"]
        assert fetcher.await_count == 3

    @pytest.mark.asyncio
    async def test_merges_feeds_with_and_without_offsets(self, fake_time):
        """Timestamps with and without an offset sort together."""
        feed = """<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns:yt="http://www.youtube.com/xml/schemas/2015" xmlns="http://www.w3.org/2005/Atom">
  <author><name>{name}</name></author>
  <entry><yt:videoId>{video_id}</yt:videoId><published>{published}</published></entry>
</feed>
"""
        parsed = {
            "UC_aware": parse_feed(
                feed.format(name="Aware", video_id="aware", published="2024-01-01T10:00:00+00:00"),
                "UC_aware",
            ).entries,
            "UC_naive": parse_feed(
                feed.format(name="Naive", video_id="naive", published="2024-01-01T11:00:00"),
                "UC_naive",
            ).entries,
        }
        aggregator = build_aggregator(fake_time, make_fetcher(parsed))

        result = await aggregator.get_aggregate(sources("UC_aware", "UC_naive"))

        assert [e.video_id for e in result] == ["naive", "aware"]

    @pytest.mark.asyncio
    async def test_hit_returns_stored_list_without_fetching(self, fake_time, feeds):
        """A cache hit returns the very same list and fetches nothing."""
        fetcher = make_fetcher(feeds)
        aggregator = build_aggregator(fake_time, fetcher)

        first = await aggregator.get_aggregate(sources("UC_a", "UC_b"))
        second = await aggregator.get_aggregate(sources("UC_a", "UC_b"))

        assert second is first
        assert fetcher.await_count == 2

    @pytest.mark.asyncio
    async def test_failing_source_is_omitted(self, fake_time, feeds):
        """One failing channel does not prevent the others from appearing."""
        fetcher = make_fetcher(feeds)
        aggregator = build_aggregator(fake_time, fetcher)

        result = await aggregator.get_aggregate(sources("UC_a", "UC_missing", "UC_b"))

        assert [e.video_id for e in result] == ["a1", "b1", "b2", "a2"]

    @pytest.mark.asyncio
    async def test_hanging_source_is_bounded(self, fake_time, feeds):
        """A channel that never answers is dropped after the fetch timeout."""

        async def _fetch(channel_id: str) -> list[FeedEntry]:
            if channel_id == "UC_slow":
                await asyncio.sleep(60)
            return feeds[channel_id]

        aggregator = build_aggregator(fake_time, _fetch, fetch_timeout=0.05)

        result = await aggregator.get_aggregate(sources("UC_slow", "UC_c"))

        assert [e.video_id for e in result] == ["c1"]

    @pytest.mark.asyncio
    async def test_fetches_start_together(self, fake_time, feeds):
        """Every fetch is in flight before any of them completes."""
        started: list[str] = []
        all_started = asyncio.Event()

        async def _fetch(channel_id: str) -> list[FeedEntry]:
            started.append(channel_id)
            if len(started) == 3:
                all_started.set()
            await all_started.wait()
            return feeds[channel_id]

        aggregator = build_aggregator(fake_time, _fetch, fetch_timeout=1.0)

        result = await aggregator.get_aggregate(sources("UC_a", "UC_b", "UC_c"))

        # Sequential fetching would time out waiting for the others
        assert len(result) == 5
        assert sorted(started) == ["UC_a", "UC_b", "UC_c"]

    @pytest.mark.asyncio
    async def test_tags_channel_thumbnail(self, fake_time, feeds):
        """Entries carry the thumbnail recorded for their channel."""
        aggregator = build_aggregator(fake_time, make_fetcher(feeds))

        result = await aggregator.get_aggregate(
            [
                SourceRef("UC_a", "https://yt3.googleusercontent.com/a"),
                SourceRef("UC_c", None),
            ]
        )

        thumbs = {e.video_id: e.channel_thumbnail for e in result}
        assert thumbs == {
            "c1": None,
            "a1": "https://yt3.googleusercontent.com/a",
            "a2": "https://yt3.googleusercontent.com/a",
        }
        # The fetched entries themselves are not modified
        assert feeds["UC_a"][0].channel_thumbnail is None

    @pytest.mark.asyncio
    async def test_cache_expires_at_next_scheduled_update(self, fake_time, feeds):
        """The aggregate stays cached until 08:00 and is refetched after."""
        fetcher = make_fetcher(feeds)
        aggregator = build_aggregator(fake_time, fetcher)
        srcs = sources("UC_a")

        await aggregator.get_aggregate(srcs)
        fake_time.advance(minutes=59)
        await aggregator.get_aggregate(srcs)
        assert fetcher.await_count == 1

        fake_time.advance(minutes=1)
        await aggregator.get_aggregate(srcs)
        assert fetcher.await_count == 2

    @pytest.mark.asyncio
    async def test_empty_aggregate_is_cached(self, fake_time):
        """Channels without videos still produce a cached (empty) aggregate."""
        fetcher = make_fetcher({"UC_quiet": []})
        aggregator = build_aggregator(fake_time, fetcher)

        assert await aggregator.get_aggregate(sources("UC_quiet")) == []
        assert await aggregator.get_aggregate(sources("UC_quiet")) == []
        assert fetcher.await_count == 1


class TestSourceAdded:
    """Tests for FeedAggregator.on_source_added."""

    @pytest.mark.asyncio
    async def test_merges_into_cached_aggregate(self, fake_time, feeds):
        """The new channel's videos join the cache without refetching others."""
        fetcher = make_fetcher(feeds)
        aggregator = build_aggregator(fake_time, fetcher)
        await aggregator.get_aggregate(sources("UC_a", "UC_b"))
        fetcher.reset_mock()

        await aggregator.on_source_added("UC_c", "https://yt3.googleusercontent.com/c")
        result = await aggregator.get_aggregate(sources("UC_a", "UC_b", "UC_c"))

        fetcher.assert_awaited_once_with("UC_c")
        assert [e.video_id for e in result] == ["c1", "a1", "b1", "b2", "a2"]
        assert result[0].channel_thumbnail == "https://yt3.googleusercontent.com/c"

    @pytest.mark.asyncio
    async def test_noop_without_cache(self, fake_time, feeds):
        """Without a cached aggregate nothing is fetched or stored."""
        fetcher = make_fetcher(feeds)
        aggregator = build_aggregator(fake_time, fetcher)

        await aggregator.on_source_added("UC_c")

        fetcher.assert_not_called()
        assert aggregator.cached() is None

    @pytest.mark.asyncio
    async def test_does_not_extend_expiry(self, fake_time, feeds):
        """The patched aggregate still expires at the same scheduled update."""
        fetcher = make_fetcher(feeds)
        aggregator = build_aggregator(fake_time, fetcher)
        await aggregator.get_aggregate(sources("UC_a"))

        fake_time.advance(minutes=30)
        await aggregator.on_source_added("UC_c")

        fake_time.advance(minutes=30)
        assert aggregator.cached() is None

    @pytest.mark.asyncio
    async def test_readding_replaces_existing_entries(self, fake_time, feeds):
        """A channel already in the cache is not duplicated."""
        aggregator = build_aggregator(fake_time, make_fetcher(feeds))
        await aggregator.get_aggregate(sources("UC_a", "UC_b"))

        await aggregator.on_source_added("UC_a")

        ids = [e.video_id for e in aggregator.cached()]
        assert ids.count("a1") == 1
        assert len(ids) == 4

    @pytest.mark.asyncio
    async def test_failed_fetch_keeps_cache(self, fake_time, feeds):
        """A new channel that cannot be fetched leaves the cache intact."""
        aggregator = build_aggregator(fake_time, make_fetcher(feeds))
        before = await aggregator.get_aggregate(sources("UC_a"))

        await aggregator.on_source_added("UC_missing")

        assert aggregator.cached() == before


class TestSourceRemoved:
    """Tests for FeedAggregator.on_source_removed."""

    @pytest.mark.asyncio
    async def test_filters_removed_channel(self, fake_time, feeds):
        """The removed channel's videos disappear from the cached aggregate."""
        fetcher = make_fetcher(feeds)
        aggregator = build_aggregator(fake_time, fetcher)
        await aggregator.get_aggregate(sources("UC_a", "UC_b", "UC_c"))

        await aggregator.on_source_removed("UC_b")
        result = await aggregator.get_aggregate(sources("UC_a", "UC_c"))

        assert [e.video_id for e in result] == ["c1", "a1", "a2"]
        assert all(e.channel_id != "UC_b" for e in result)
        assert fetcher.await_count == 3

    @pytest.mark.asyncio
    async def test_noop_without_cache(self, fake_time, feeds):
        """Without a cached aggregate nothing is stored."""
        aggregator = build_aggregator(fake_time, make_fetcher(feeds))

        await aggregator.on_source_removed("UC_a")

        assert aggregator.cached() is None

    @pytest.mark.asyncio
    async def test_invalidate_drops_cache(self, fake_time, feeds):
        """invalidate forces the next read to refetch."""
        fetcher = make_fetcher(feeds)
        aggregator = build_aggregator(fake_time, fetcher)
        await aggregator.get_aggregate(sources("UC_a"))

        aggregator.invalidate()
        await aggregator.get_aggregate(sources("UC_a"))

        assert fetcher.await_count == 2


class TestAnnotateWatched:
    """Tests for annotate_watched."""

    @pytest.mark.asyncio
    async def test_annotation_is_not_cached(self, fake_time, feeds):
        """Watched flags are computed per read and never stored."""
        aggregator = build_aggregator(fake_time, make_fetcher(feeds))
        entries = await aggregator.get_aggregate(sources("UC_a"))

        annotated = annotate_watched(entries, {"a2"})

        assert [(e.video_id, e.watched) for e in annotated] == [
            ("a1", False),
            ("a2", True),
        ]
        assert not hasattr(aggregator.cached()[0], "watched")
