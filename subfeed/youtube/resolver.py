"""Resolution of YouTube channel URLs to channel ids and metadata."""

import logging
from urllib.parse import urlparse

import httpx
from pydantic import BaseModel

from subfeed.rss import FeedUnavailableError, fetch_channel_name

from .matchers import CHANNEL_ID_PATTERN, extract_avatar_url, extract_channel_id, extract_handle

logger = logging.getLogger(__name__)

YOUTUBE_DOMAINS = ("youtube.com", "youtu.be")
CHANNEL_PAGE_URL = "https://www.youtube.com/channel/{channel_id}"

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept-Language": "en-US,en;q=0.9",
}


class ResolvedChannel(BaseModel):
    """A channel identified from a user-supplied URL."""

    channel_id: str
    name: str
    handle: str | None = None
    thumbnail_url: str | None = None


class ChannelResolutionError(Exception):
    """Raised when a URL cannot be resolved to a channel.

    Attributes:
        reason: One of ``invalid_url``, ``not_found`` or ``unreachable``
    """

    INVALID_URL = "invalid_url"
    NOT_FOUND = "not_found"
    UNREACHABLE = "unreachable"

    def __init__(self, reason: str, message: str):
        super().__init__(message)
        self.reason = reason
        self.message = message


def normalize_url(url: str) -> str:
    """Trim whitespace and add an https scheme when none is given."""
    normalized = url.strip()
    if not normalized.startswith("http"):
        normalized = f"https://{normalized}"
    return normalized


def is_youtube_host(hostname: str | None) -> bool:
    if not hostname:
        return False
    hostname = hostname.lower()
    return any(hostname == d or hostname.endswith(f".{d}") for d in YOUTUBE_DOMAINS)


def direct_channel_id(url: str) -> str | None:
    """Return the channel id embedded in a ``/channel/UC...`` URL path."""
    parts = [p for p in urlparse(url).path.split("/") if p]
    if len(parts) >= 2 and parts[0] == "channel" and CHANNEL_ID_PATTERN.match(parts[1]):
        return parts[1]
    return None


class ChannelResolver:
    """Turns a channel URL (``/@handle``, ``/c/name``, ``/channel/UC...``) into a channel.

    Handle and custom URLs need the channel page to be scraped for the
    channel id. Matchers run in priority order and the first hit wins.
    """

    def __init__(self, timeout: float = 15.0):
        self._timeout = timeout

    async def _fetch_page(self, url: str) -> str:
        async with httpx.AsyncClient(
            timeout=self._timeout, headers=BROWSER_HEADERS, follow_redirects=True
        ) as client:
            response = await client.get(url)
            response.raise_for_status()
            return response.text

    async def scrape_channel_id(self, url: str) -> str | None:
        """Fetch a channel page and extract its owner's channel id.

        Returns:
            The channel id, or None if the page could not be fetched or no
            matcher found one
        """
        try:
            html = await self._fetch_page(url)
        except httpx.HTTPError as e:
            logger.warning("Failed to fetch channel page %s: %s", url, e)
            return None
        return extract_channel_id(html, url)

    async def fetch_thumbnail(self, channel_id: str) -> str | None:
        """Best-effort lookup of a channel's avatar; None on any failure."""
        try:
            html = await self._fetch_page(CHANNEL_PAGE_URL.format(channel_id=channel_id))
            return extract_avatar_url(html)
        except httpx.HTTPError as e:
            logger.info("Could not fetch thumbnail for %s: %s", channel_id, e)
        except Exception:
            logger.warning(
                "Unexpected error fetching thumbnail for %s", channel_id, exc_info=True
            )
        return None

    async def resolve(self, url: str) -> ResolvedChannel:
        """Resolve a YouTube channel URL.

        Args:
            url: Channel URL, with or without scheme

        Returns:
            ResolvedChannel with id, display name, handle and thumbnail

        Raises:
            ChannelResolutionError: If the URL is not a YouTube URL, no
                channel id can be found, or the channel's feed is unreachable
        """
        normalized = normalize_url(url)
        try:
            parsed = urlparse(normalized)
        except ValueError as e:
            raise ChannelResolutionError(
                ChannelResolutionError.INVALID_URL, "Invalid URL: not a YouTube link"
            ) from e

        if parsed.scheme not in ("http", "https") or not is_youtube_host(parsed.hostname):
            raise ChannelResolutionError(
                ChannelResolutionError.INVALID_URL, "Invalid URL: not a YouTube link"
            )

        channel_id = direct_channel_id(normalized)
        handle = None
        if channel_id is None:
            channel_id = await self.scrape_channel_id(normalized)
            if channel_id is None:
                raise ChannelResolutionError(
                    ChannelResolutionError.NOT_FOUND,
                    "Could not find the channel. Check the URL and try again.",
                )
            handle = extract_handle(normalized)

        try:
            name = await fetch_channel_name(channel_id, timeout=self._timeout)
        except FeedUnavailableError as e:
            raise ChannelResolutionError(
                ChannelResolutionError.UNREACHABLE, "Channel not found on YouTube"
            ) from e

        thumbnail_url = await self.fetch_thumbnail(channel_id)

        logger.info("Resolved %s to channel %s", normalized, channel_id)
        return ResolvedChannel(
            channel_id=channel_id,
            name=name,
            handle=handle,
            thumbnail_url=thumbnail_url,
        )
