"""YouTube channel resolution for SubFeed."""

from .resolver import ChannelResolutionError, ChannelResolver, ResolvedChannel

__all__ = ["ChannelResolutionError", "ChannelResolver", "ResolvedChannel"]
