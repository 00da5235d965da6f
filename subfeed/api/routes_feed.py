"""Feed aggregation endpoint for the SubFeed API."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from subfeed.api.dependencies import get_aggregator, get_schedule
from subfeed.auth import require_session
from subfeed.db import crud
from subfeed.db.session import get_session
from subfeed.feed import FeedAggregator, SourceRef, annotate_watched
from subfeed.schedule import ScheduleClock

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/feed", tags=["feed"], dependencies=[Depends(require_session)]
)
limiter = Limiter(key_func=get_remote_address)


@router.get("")
@limiter.limit("120/minute")
async def get_feed(
    request: Request,
    db: AsyncSession = Depends(get_session),
    aggregator: FeedAggregator = Depends(get_aggregator),
    schedule: ScheduleClock = Depends(get_schedule),
):
    """
    Aggregated feed of every followed channel, newest first.

    The merged feed is cached until the next scheduled update; watched
    status is looked up fresh on every request.

    Returns:
        JSON response with:
            - videos: Feed entries with a ``watched`` flag
            - nextUpdateAt: ISO timestamp of the next scheduled refresh
    """
    next_update_at = schedule.next_scheduled_time().isoformat()

    try:
        channels = await crud.list_channels(db)
        sources = [
            SourceRef(channel_id=ch.channel_id, thumbnail_url=ch.thumbnail_url)
            for ch in channels
        ]
        entries = await aggregator.get_aggregate(sources)
        watched_ids = await crud.get_watched_video_ids(db) if entries else set()
    except Exception:
        logger.error("Error fetching feed", exc_info=True)
        raise HTTPException(status_code=500, detail="Error fetching feed")

    return {
        "videos": [
            entry.model_dump(mode="json")
            for entry in annotate_watched(entries, watched_ids)
        ],
        "nextUpdateAt": next_update_at,
    }
