"""Pydantic models for RSS feed entries."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class FeedEntry(BaseModel):
    """A single video from a channel's RSS feed.

    Entries are immutable; tagging produces a copy via ``model_copy``.
    """

    model_config = ConfigDict(frozen=True)

    video_id: str
    title: str
    link: str
    thumbnail: str
    published: datetime
    description: str = ""
    channel_id: str
    channel_name: str
    channel_thumbnail: str | None = None


class WatchedFeedEntry(FeedEntry):
    """A feed entry annotated with the reader's watched status."""

    watched: bool = False


class ParsedFeed(BaseModel):
    """Result of parsing one channel's feed document."""

    name: str
    entries: list[FeedEntry]
