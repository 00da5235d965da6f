"""Database module for SubFeed."""

from subfeed.db.models import Base, Channel, WatchedVideo
from subfeed.db.session import get_engine, get_session, get_sessionmaker, init_db

__all__ = [
    "Base",
    "Channel",
    "WatchedVideo",
    "get_session",
    "get_engine",
    "get_sessionmaker",
    "init_db",
]
