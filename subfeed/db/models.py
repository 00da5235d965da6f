"""SQLAlchemy models for SubFeed."""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class Channel(Base):
    """A followed YouTube channel."""

    __tablename__ = "channels"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    channel_id: Mapped[str] = mapped_column(String, unique=True, index=True)
    name: Mapped[str] = mapped_column(String)
    handle: Mapped[str | None] = mapped_column(String, nullable=True)
    thumbnail_url: Mapped[str | None] = mapped_column(String, nullable=True)
    added_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())


class WatchedVideo(Base):
    """A video marked as watched."""

    __tablename__ = "watched_videos"

    video_id: Mapped[str] = mapped_column(String, primary_key=True)
    watched_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
