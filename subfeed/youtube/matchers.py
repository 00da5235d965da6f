"""Channel id extraction from YouTube page markup.

Each matcher looks at a different structural signal in a channel page and
returns the channel id it finds, or None. They are ordered by how reliably
the signal belongs to the page owner: generic fields such as ``channelId``
also appear in recommendation and featured-channel widgets, so they are
tried last and only in a form tied to the requested path.
"""

import re
from collections.abc import Callable
from urllib.parse import urlparse

# Channel IDs start with UC and are 24 characters (alphanumeric, -, _)
CHANNEL_ID = r"UC[a-zA-Z0-9_-]{22}"
CHANNEL_ID_PATTERN = re.compile(rf"^{CHANNEL_ID}$")

Matcher = Callable[[str, str], str | None]

_RSS_LINK = re.compile(
    rf'<link[^>]+type="application/rss\+xml"[^>]+href="[^"]*channel_id=({CHANNEL_ID})"'
)
_META_CHANNEL_ID = re.compile(rf'<meta\s+itemprop="channelId"\s+content="({CHANNEL_ID})"')
_CANONICAL_LINK = re.compile(
    rf'<link\s+rel="canonical"\s+href="https://www\.youtube\.com/channel/({CHANNEL_ID})"'
)
_EXTERNAL_ID = re.compile(rf'"externalId":"({CHANNEL_ID})"')
_HEADER_RENDERER = re.compile(
    rf'"c4TabbedHeaderRenderer":\{{[^}}]*"channelId":"({CHANNEL_ID})"'
)
_AVATAR = re.compile(
    r'"avatar":\{"thumbnails":\[.*?\{"url":"(https://yt3\.googleusercontent\.com/[^"]+)"'
)


def _search(pattern: re.Pattern[str], html: str) -> str | None:
    match = pattern.search(html)
    return match.group(1) if match else None


def match_rss_link(html: str, url: str) -> str | None:
    """RSS autodiscovery link; always points at the page's own channel."""
    return _search(_RSS_LINK, html)


def match_meta_channel_id(html: str, url: str) -> str | None:
    """``<meta itemprop="channelId">`` for the page owner."""
    return _search(_META_CHANNEL_ID, html)


def match_canonical_link(html: str, url: str) -> str | None:
    """Canonical link pointing at a ``/channel/UC...`` URL."""
    return _search(_CANONICAL_LINK, html)


def match_external_id(html: str, url: str) -> str | None:
    """``externalId`` in the page's initial data."""
    return _search(_EXTERNAL_ID, html)


def match_header_renderer(html: str, url: str) -> str | None:
    """``channelId`` inside the channel header renderer."""
    return _search(_HEADER_RENDERER, html)


def match_browse_endpoint(html: str, url: str) -> str | None:
    """``browseId`` whose object carries the requested path as canonicalBaseUrl."""
    path = urlparse(url).path
    if not path or path == "/":
        return None
    pattern = re.compile(
        rf'"browseId":"({CHANNEL_ID})"[^}}]*"canonicalBaseUrl":"{re.escape(path)}"'
    )
    return _search(pattern, html)


CHANNEL_ID_MATCHERS: tuple[Matcher, ...] = (
    match_rss_link,
    match_meta_channel_id,
    match_canonical_link,
    match_external_id,
    match_header_renderer,
    match_browse_endpoint,
)


def extract_channel_id(
    html: str, url: str, matchers: tuple[Matcher, ...] = CHANNEL_ID_MATCHERS
) -> str | None:
    """Return the id from the first matcher that finds one."""
    for matcher in matchers:
        if channel_id := matcher(html, url):
            return channel_id
    return None


def extract_avatar_url(html: str) -> str | None:
    """Return the first channel avatar URL in a channel page, if any."""
    return _search(_AVATAR, html)


def extract_handle(url: str) -> str | None:
    """Derive the channel handle from a URL path.

    ``/@name`` gives ``@name`` and ``/c/name`` gives ``name``. Any other
    path has no handle.
    """
    parts = [p for p in urlparse(url).path.split("/") if p]
    if not parts:
        return None
    if parts[0].startswith("@"):
        return parts[0]
    if parts[0] == "c" and len(parts) > 1:
        return parts[1]
    return None
