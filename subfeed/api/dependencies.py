"""FastAPI dependencies for API routers.

The feed aggregator and channel resolver are created once per application
in the lifespan handler and stored on ``app.state``; routes reach them
through these dependencies so tests can override them per app.
"""

from fastapi import Request

from subfeed.feed import FeedAggregator
from subfeed.schedule import ScheduleClock
from subfeed.youtube import ChannelResolver


def get_aggregator(request: Request) -> FeedAggregator:
    """Return the application's feed aggregator."""
    return request.app.state.aggregator


def get_schedule(request: Request) -> ScheduleClock:
    """Return the application's schedule clock."""
    return request.app.state.aggregator.clock


def get_resolver(request: Request) -> ChannelResolver:
    """Return the application's channel resolver."""
    return request.app.state.resolver
