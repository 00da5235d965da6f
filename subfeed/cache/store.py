"""In-memory keyed store with per-entry expiry."""

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

DEFAULT_TTL_MS = 5 * 60 * 1000  # 5 minutes


@dataclass(frozen=True)
class CacheEntry:
    """A stored value and the wall-clock second at which it stops being valid."""

    data: Any
    expires_at: float

    def is_valid(self, now: float) -> bool:
        return now < self.expires_at


class TTLCache:
    """Small in-memory cache of named entries with lazy expiry.

    Expired entries are only removed when they are read; nothing sweeps the
    store in the background. Values are stored as given and never
    inspected. Every mutation replaces or removes a single key, so readers
    never observe a partially written entry.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        default_ttl_ms: int = DEFAULT_TTL_MS,
    ):
        self._clock = clock
        self._default_ttl_ms = default_ttl_ms
        self._store: dict[str, CacheEntry] = {}

    def get(self, key: str) -> Any | None:
        """Return the value for ``key``, or None if it is absent or expired.

        A cached empty value (e.g. ``[]``) is returned as-is and is distinct
        from None.
        """
        entry = self._store.get(key)
        if entry is None:
            return None

        if not entry.is_valid(self._clock()):
            self._store.pop(key, None)
            return None

        return entry.data

    def set(self, key: str, value: Any, ttl_ms: int | None = None) -> None:
        """Store ``value`` under ``key`` for ``ttl_ms`` milliseconds."""
        if ttl_ms is None:
            ttl_ms = self._default_ttl_ms
        self._store[key] = CacheEntry(
            data=value, expires_at=self._clock() + ttl_ms / 1000
        )

    def invalidate(self, key: str) -> None:
        """Remove ``key`` if present."""
        self._store.pop(key, None)

    def invalidate_all(self) -> None:
        """Remove every entry."""
        self._store.clear()

    def __contains__(self, key: str) -> bool:
        entry = self._store.get(key)
        return entry is not None and entry.is_valid(self._clock())

    def __len__(self) -> int:
        return len(self._store)
