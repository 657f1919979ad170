"""Creation-time windows for need-request listings and monthly dashboard series.

Calendar boundaries (Monday 00:00, the 1st 00:00) are computed in the
configured local zone and returned as UTC instants, so the database comparison
never depends on the server's own timezone.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta, tzinfo

from ngoconnect.models.enums import RequestWindow


def window_start(window: RequestWindow, now: datetime, tz: tzinfo) -> datetime:
    """Return the inclusive UTC lower bound of ``window`` relative to ``now``.

    Args:
        window: Which trailing window to compute
        now: Current instant (must be timezone-aware)
        tz: Local zone that defines week and month boundaries

    Returns:
        Timezone-aware UTC datetime
    """
    if now.tzinfo is None:
        raise ValueError("now must be timezone-aware")

    if window == RequestWindow.LAST_7_DAYS:
        return (now - timedelta(days=7)).astimezone(UTC)

    local_now = now.astimezone(tz)
    local_midnight = local_now.replace(hour=0, minute=0, second=0, microsecond=0)

    if window == RequestWindow.THIS_WEEK:
        start = local_midnight - timedelta(days=local_now.weekday())
    elif window == RequestWindow.THIS_MONTH:
        start = local_midnight.replace(day=1)
    else:
        raise ValueError(f"Unsupported window: {window}")

    # Rebuild from wall-clock fields so DST shifts between now and the
    # boundary resolve to the boundary's own offset.
    start = datetime(start.year, start.month, start.day, tzinfo=tz)
    return start.astimezone(UTC)



@dataclass(frozen=True)
class MonthBucket:
    """One calendar month of the configured zone, as a half-open UTC range."""

    label: str
    start: datetime
    end: datetime

    def contains(self, instant: datetime) -> bool:
        return self.start <= as_aware_utc(instant) < self.end


def as_aware_utc(instant: datetime) -> datetime:
    """Treat naive datetimes (as read back from SQLite) as UTC."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=UTC)
    return instant.astimezone(UTC)


def _shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def trailing_months(now: datetime, tz: tzinfo, count: int = 12) -> list[MonthBucket]:
    """The ``count`` calendar months ending with the current one, oldest first."""
    if now.tzinfo is None:
        raise ValueError("now must be timezone-aware")

    local_now = now.astimezone(tz)
    buckets: list[MonthBucket] = []
    for offset in range(count - 1, -1, -1):
        year, month = _shift_month(local_now.year, local_now.month, -offset)
        next_year, next_month = _shift_month(year, month, 1)
        buckets.append(
            MonthBucket(
                label=f"{year:04d}-{month:02d}",
                start=datetime(year, month, 1, tzinfo=tz).astimezone(UTC),
                end=datetime(next_year, next_month, 1, tzinfo=tz).astimezone(UTC),
            )
        )
    return buckets


def count_by_month(
    buckets: list[MonthBucket], instants: Iterable[datetime | None]
) -> list[int]:
    """How many of ``instants`` fall into each bucket; ``None`` and out-of-range values are ignored."""
    counts = [0] * len(buckets)
    for instant in instants:
        if instant is None:
            continue
        for index, bucket in enumerate(buckets):
            if bucket.contains(instant):
                counts[index] += 1
                break
    return counts
