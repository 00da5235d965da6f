"""Fetching and parsing of YouTube channel RSS feeds."""

import logging
import xml.etree.ElementTree as ET
from datetime import datetime, timezone

import httpx

from .models import FeedEntry, ParsedFeed

logger = logging.getLogger(__name__)

# XML namespaces for YouTube RSS feeds
NAMESPACES = {
    "yt": "http://www.youtube.com/xml/schemas/2015",
    "atom": "http://www.w3.org/2005/Atom",
    "media": "http://search.yahoo.com/mrss/",
}

FEED_URL = "https://www.youtube.com/feeds/videos.xml?channel_id={channel_id}"
WATCH_URL = "https://www.youtube.com/watch?v={video_id}"
THUMBNAIL_URL = "https://i.ytimg.com/vi/{video_id}/hqdefault.jpg"

DEFAULT_TIMEOUT = 15


class FeedUnavailableError(Exception):
    """Raised when a channel's feed cannot be fetched or parsed."""


def feed_url(channel_id: str) -> str:
    """Build the RSS feed URL for a channel."""
    return FEED_URL.format(channel_id=channel_id)


def _text(elem: ET.Element | None) -> str:
    if elem is None or elem.text is None:
        return ""
    return elem.text.strip()


def _feed_name(root: ET.Element, default: str) -> str:
    """Channel display name: author name, then feed title, then ``default``."""
    return (
        _text(root.find("atom:author/atom:name", NAMESPACES))
        or _text(root.find("atom:title", NAMESPACES))
        or default
    )


def _parse_published(value: str) -> datetime:
    # Parse ISO 8601 datetime (convert Z to +00:00 for proper parsing)
    published = datetime.fromisoformat(value.replace("Z", "+00:00"))
    # Timestamps without an offset are UTC
    if published.tzinfo is None:
        published = published.replace(tzinfo=timezone.utc)
    return published


def parse_feed(xml_text: str, channel_id: str) -> ParsedFeed:
    """Parse a YouTube feed document into normalized entries.

    A feed with a single ``<entry>`` is handled exactly like one with many;
    ``findall`` always yields a list. Entries without a video id or with an
    unparseable published timestamp are skipped.

    Args:
        xml_text: Raw Atom document
        channel_id: Channel the feed belongs to

    Returns:
        ParsedFeed with the channel name and its entries in document order

    Raises:
        xml.etree.ElementTree.ParseError: If the document is not valid XML
    """
    root = ET.fromstring(xml_text)
    channel_name = _feed_name(root, "Unknown")

    entries = []
    for entry in root.findall("atom:entry", NAMESPACES):
        video_id = _text(entry.find("yt:videoId", NAMESPACES))
        published_str = _text(entry.find("atom:published", NAMESPACES))
        if not video_id or not published_str:
            continue

        try:
            published = _parse_published(published_str)
        except ValueError:
            logger.debug("Skipping %s: bad published timestamp %r", video_id, published_str)
            continue

        group = entry.find("media:group", NAMESPACES)
        title = _text(entry.find("atom:title", NAMESPACES))
        description = ""
        thumbnail = ""
        if group is not None:
            title = _text(group.find("media:title", NAMESPACES)) or title
            description = _text(group.find("media:description", NAMESPACES))
            thumb_elem = group.find("media:thumbnail", NAMESPACES)
            if thumb_elem is not None:
                thumbnail = thumb_elem.attrib.get("url", "")

        entries.append(
            FeedEntry(
                video_id=video_id,
                title=title,
                link=WATCH_URL.format(video_id=video_id),
                thumbnail=thumbnail or THUMBNAIL_URL.format(video_id=video_id),
                published=published,
                description=description,
                channel_id=channel_id,
                channel_name=channel_name,
            )
        )

    return ParsedFeed(name=channel_name, entries=entries)


async def fetch_channel_feed(
    channel_id: str, timeout: float = DEFAULT_TIMEOUT
) -> list[FeedEntry]:
    """Fetch and parse a channel's RSS feed.

    Never raises: HTTP errors, timeouts and malformed XML are logged and
    produce an empty list so a single unreachable channel cannot break the
    aggregated feed.

    Args:
        channel_id: YouTube channel ID
        timeout: Request timeout in seconds

    Returns:
        List of FeedEntry objects, empty on any failure
    """
    url = feed_url(channel_id)
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.get(url)
            response.raise_for_status()
            response_text = response.text

        return parse_feed(response_text, channel_id).entries
    except httpx.HTTPStatusError as e:
        logger.warning(
            "Failed to fetch RSS for %s: HTTP %s", channel_id, e.response.status_code
        )
    except httpx.HTTPError as e:
        logger.warning("Failed to fetch RSS for %s: %s", channel_id, e)
    except ET.ParseError:
        logger.warning("Invalid RSS XML for %s", channel_id)
    except Exception:
        logger.error("Unexpected error fetching feed for %s", channel_id, exc_info=True)
    return []


async def fetch_channel_name(
    channel_id: str, timeout: float = DEFAULT_TIMEOUT
) -> str:
    """Fetch a channel's display name from its RSS feed.

    Unlike ``fetch_channel_feed`` this raises, since a channel whose feed
    cannot be read cannot be followed.

    Raises:
        FeedUnavailableError: If the feed request fails or returns invalid XML
    """
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.get(feed_url(channel_id))
            response.raise_for_status()
            response_text = response.text
    except httpx.HTTPError as e:
        raise FeedUnavailableError(f"Feed for {channel_id} is unavailable") from e

    try:
        root = ET.fromstring(response_text)
    except ET.ParseError as e:
        raise FeedUnavailableError(f"Feed for {channel_id} is not valid XML") from e

    return _feed_name(root, "Unknown channel")
