"""Fixed daily update schedule for the aggregated feed.

The feed cache does not use a rolling TTL. It stays valid until the next
scheduled update hour (by default 08:00 and 20:00 in America/Sao_Paulo),
so every reader sees the same refresh boundaries regardless of when the
cache was filled.
"""

from collections.abc import Callable, Sequence
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

MIN_DELAY_MS = 1000


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ScheduleClock:
    """Computes the last and next scheduled update instants in a timezone.

    All results are timezone-aware UTC datetimes. Every method takes an
    optional ``now`` so callers (and tests) can evaluate the schedule at an
    arbitrary instant; otherwise the clock's ``now`` callable is used.
    """

    def __init__(
        self,
        timezone_name: str = "America/Sao_Paulo",
        update_hours: Sequence[int] = (8, 20),
        now: Callable[[], datetime] | None = None,
    ):
        """Create a schedule clock.

        Args:
            timezone_name: IANA timezone the update hours are expressed in
            update_hours: Wall-clock hours of day (0-23) at which the feed refreshes
            now: Callable returning the current instant (defaults to UTC now)

        Raises:
            ValueError: If the timezone is unknown or the hours are invalid
        """
        try:
            self._tz = ZoneInfo(timezone_name)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {timezone_name}") from e

        hours = sorted(set(update_hours))
        if not hours:
            raise ValueError("At least one update hour is required")
        if hours[0] < 0 or hours[-1] > 23:
            raise ValueError("Update hours must be between 0 and 23")

        self.timezone_name = timezone_name
        self.update_hours: tuple[int, ...] = tuple(hours)
        self._now = now or _utcnow

    def _current(self, now: datetime | None) -> datetime:
        current = now if now is not None else self._now()
        if current.tzinfo is None:
            current = current.replace(tzinfo=timezone.utc)
        return current

    def _to_instant(self, day: date, hour: int) -> datetime:
        """Convert a wall-clock (day, hour) in the schedule timezone to UTC.

        Starts from a guess that pretends the wall-clock time is UTC, looks
        at which local time that guess really maps to and shifts it by the
        difference. The offset can change between the guess and the
        corrected instant around a DST transition, so the correction runs a
        second time when the first one does not land on the target.
        """
        target = datetime(day.year, day.month, day.day, hour)
        guess = target.replace(tzinfo=timezone.utc)
        for _ in range(2):
            local = guess.astimezone(self._tz).replace(tzinfo=None)
            delta = target - local
            if not delta:
                break
            guess += delta
        return guess

    def _slot_instant(self, slot: tuple[date, int]) -> datetime:
        day, index = slot
        return self._to_instant(day, self.update_hours[index])

    def _previous_slot(self, slot: tuple[date, int]) -> tuple[date, int]:
        day, index = slot
        if index == 0:
            return day - timedelta(days=1), len(self.update_hours) - 1
        return day, index - 1

    def _following_slot(self, slot: tuple[date, int]) -> tuple[date, int]:
        day, index = slot
        if index == len(self.update_hours) - 1:
            return day + timedelta(days=1), 0
        return day, index + 1

    def last_scheduled_time(self, now: datetime | None = None) -> datetime:
        """Return the most recent scheduled update at or before ``now``."""
        current = self._current(now)
        local = current.astimezone(self._tz)
        today = local.date()
        hours = self.update_hours

        if local.hour >= hours[-1]:
            slot = (today, len(hours) - 1)
        else:
            slot = (today - timedelta(days=1), len(hours) - 1)
            for index in range(len(hours) - 1, -1, -1):
                if local.hour >= hours[index]:
                    slot = (today, index)
                    break

        result = self._slot_instant(slot)
        # Ambiguous wall-clock hours (DST fall-back) can map after now
        while result > current:
            slot = self._previous_slot(slot)
            result = self._slot_instant(slot)
        return result

    def next_scheduled_time(self, now: datetime | None = None) -> datetime:
        """Return the soonest scheduled update strictly after ``now``."""
        current = self._current(now)
        local = current.astimezone(self._tz)
        today = local.date()
        hours = self.update_hours

        slot = (today + timedelta(days=1), 0)
        for index, hour in enumerate(hours):
            if local.hour < hour:
                slot = (today, index)
                break

        result = self._slot_instant(slot)
        # Skipped wall-clock hours (DST spring-forward) can map at or before now
        while result <= current:
            slot = self._following_slot(slot)
            result = self._slot_instant(slot)
        return result.astimezone(timezone.utc)

    def ms_until_next_update(self, now: datetime | None = None) -> int:
        """Return milliseconds until the next scheduled update, at least 1000."""
        current = self._current(now)
        delta = self.next_scheduled_time(current) - current
        return max(int(delta.total_seconds() * 1000), MIN_DELAY_MS)
