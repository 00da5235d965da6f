"""CRUD utilities for database operations."""

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from subfeed.db.models import Channel, WatchedVideo


async def list_channels(db: AsyncSession) -> list[Channel]:
    """List all followed channels, most recently added first."""
    result = await db.execute(
        select(Channel).order_by(Channel.added_at.desc(), Channel.id.desc())
    )
    return list(result.scalars().all())


async def get_channel_by_id(db: AsyncSession, id: int) -> Channel | None:
    """Get a channel by its database ID."""
    result = await db.execute(select(Channel).where(Channel.id == id))
    return result.scalar_one_or_none()


async def channel_exists(db: AsyncSession, channel_id: str) -> bool:
    """Check whether a YouTube channel ID is already followed."""
    result = await db.execute(
        select(Channel.id).where(Channel.channel_id == channel_id)
    )
    return result.first() is not None


async def add_channel(
    db: AsyncSession,
    channel_id: str,
    name: str,
    handle: str | None = None,
    thumbnail_url: str | None = None,
) -> Channel:
    """Follow a new channel."""
    channel = Channel(
        channel_id=channel_id,
        name=name,
        handle=handle,
        thumbnail_url=thumbnail_url,
    )
    db.add(channel)
    await db.commit()
    await db.refresh(channel)
    return channel


async def delete_channel(db: AsyncSession, id: int) -> bool:
    """Unfollow a channel.

    Returns:
        True if the channel was deleted, False if it wasn't found
    """
    result = await db.execute(delete(Channel).where(Channel.id == id))
    await db.commit()
    return result.rowcount > 0


async def get_watched_video_ids(db: AsyncSession) -> set[str]:
    """Get all watched video IDs."""
    result = await db.execute(select(WatchedVideo.video_id))
    return set(result.scalars().all())


async def mark_video_watched(db: AsyncSession, video_id: str) -> None:
    """Mark a video as watched. Marking twice is a no-op."""
    existing = await db.get(WatchedVideo, video_id)
    if existing is None:
        db.add(WatchedVideo(video_id=video_id))
        await db.commit()


async def unmark_video_watched(db: AsyncSession, video_id: str) -> bool:
    """Unmark a video as watched.

    Returns:
        True if the video was unmarked, False if it wasn't marked
    """
    result = await db.execute(
        delete(WatchedVideo).where(WatchedVideo.video_id == video_id)
    )
    await db.commit()
    return result.rowcount > 0
