"""Channel management endpoints for the SubFeed API."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from subfeed.api.dependencies import get_aggregator, get_resolver
from subfeed.auth import require_session
from subfeed.db import crud
from subfeed.db.models import Channel
from subfeed.db.session import get_session
from subfeed.feed import FeedAggregator
from subfeed.youtube import ChannelResolutionError, ChannelResolver, ResolvedChannel

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/channels", tags=["channels"], dependencies=[Depends(require_session)]
)
limiter = Limiter(key_func=get_remote_address)

RESOLUTION_STATUS = {
    ChannelResolutionError.INVALID_URL: 400,
    ChannelResolutionError.NOT_FOUND: 404,
    ChannelResolutionError.UNREACHABLE: 502,
}


class ChannelUrlRequest(BaseModel):
    """Request model carrying a channel URL."""

    url: str | None = None


def _serialize_channel(channel: Channel) -> dict:
    return {
        "id": channel.id,
        "channel_id": channel.channel_id,
        "name": channel.name,
        "handle": channel.handle,
        "thumbnail_url": channel.thumbnail_url,
        "added_at": channel.added_at.isoformat() if channel.added_at else None,
    }


async def _resolve(resolver: ChannelResolver, body: ChannelUrlRequest) -> ResolvedChannel:
    """Resolve the request's URL, translating failures to HTTP errors."""
    if not body.url or not body.url.strip():
        raise HTTPException(status_code=400, detail="URL is required")

    try:
        return await resolver.resolve(body.url)
    except ChannelResolutionError as e:
        logger.info(f"Could not resolve channel URL {body.url!r}: {e.reason}")
        raise HTTPException(
            status_code=RESOLUTION_STATUS.get(e.reason, 500), detail=e.message
        )


@router.get("")
@limiter.limit("60/minute")
async def list_channels(
    request: Request,
    db: AsyncSession = Depends(get_session),
):
    """
    List followed channels, most recently added first.
    """
    channels = await crud.list_channels(db)
    return [_serialize_channel(ch) for ch in channels]


@router.post("", status_code=201)
@limiter.limit("30/minute")
async def add_channel(
    request: Request,
    body: ChannelUrlRequest,
    db: AsyncSession = Depends(get_session),
    resolver: ChannelResolver = Depends(get_resolver),
    aggregator: FeedAggregator = Depends(get_aggregator),
):
    """
    Follow a channel given any of its YouTube URLs.

    The channel is resolved, stored, and merged into the cached feed
    without invalidating the rest of it.

    Raises:
        HTTPException: 400 for a missing or non-YouTube URL, 404 if the
            channel cannot be found, 409 if it is already followed
    """
    info = await _resolve(resolver, body)

    if await crud.channel_exists(db, info.channel_id):
        raise HTTPException(status_code=409, detail="This channel is already added")

    try:
        channel = await crud.add_channel(
            db,
            channel_id=info.channel_id,
            name=info.name,
            handle=info.handle,
            thumbnail_url=info.thumbnail_url,
        )
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="This channel is already added")

    await aggregator.on_source_added(channel.channel_id, channel.thumbnail_url)

    return _serialize_channel(channel)


@router.post("/resolve")
@limiter.limit("30/minute")
async def resolve_channel(
    request: Request,
    body: ChannelUrlRequest,
    db: AsyncSession = Depends(get_session),
    resolver: ChannelResolver = Depends(get_resolver),
):
    """
    Preview the channel a URL points to without following it.
    """
    info = await _resolve(resolver, body)
    already_added = await crud.channel_exists(db, info.channel_id)

    return {
        "channelId": info.channel_id,
        "name": info.name,
        "handle": info.handle,
        "thumbnailUrl": info.thumbnail_url,
        "alreadyAdded": already_added,
    }


@router.delete("/{id}")
@limiter.limit("30/minute")
async def remove_channel(
    request: Request,
    id: str,
    db: AsyncSession = Depends(get_session),
    aggregator: FeedAggregator = Depends(get_aggregator),
):
    """
    Unfollow a channel and drop its videos from the cached feed.

    Raises:
        HTTPException: 400 if the ID is not an integer, 404 if no such channel
    """
    try:
        channel_pk = int(id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid ID")

    channel = await crud.get_channel_by_id(db, channel_pk)
    if not channel:
        raise HTTPException(status_code=404, detail="Channel not found")

    channel_id = channel.channel_id
    await crud.delete_channel(db, channel_pk)
    await aggregator.on_source_removed(channel_id)

    return {"success": True}
