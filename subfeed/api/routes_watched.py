"""Watched videos endpoints for the SubFeed API."""

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from subfeed.auth import require_session
from subfeed.db import crud
from subfeed.db.session import get_session

router = APIRouter(
    prefix="/api/watched", tags=["watched"], dependencies=[Depends(require_session)]
)
limiter = Limiter(key_func=get_remote_address)


class WatchedRequest(BaseModel):
    """Request model for marking or unmarking a video as watched."""

    video_id: str | None = Field(default=None, alias="videoId")
    undo: bool = False


@router.get("")
@limiter.limit("120/minute")
async def get_watched_videos(
    request: Request,
    db: AsyncSession = Depends(get_session),
):
    """
    Get all watched video IDs.

    Rate limit: 120 requests per minute per IP.
    """
    video_ids = await crud.get_watched_video_ids(db)
    return sorted(video_ids)


@router.post("")
@limiter.limit("60/minute")
async def update_watched(
    request: Request,
    body: WatchedRequest,
    db: AsyncSession = Depends(get_session),
):
    """
    Mark a video as watched, or unmark it when ``undo`` is true.

    Rate limit: 60 requests per minute per IP.

    Raises:
        HTTPException: 400 if videoId is missing or empty
    """
    if not body.video_id or not body.video_id.strip():
        raise HTTPException(status_code=400, detail="videoId is required")

    if body.undo:
        await crud.unmark_video_watched(db, body.video_id)
    else:
        await crud.mark_video_watched(db, body.video_id)

    return {"success": True}
