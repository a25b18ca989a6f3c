"""Resolve reporting buckets into concrete half-open time intervals.

Timestamps without tzinfo are treated as UTC. The data store persists
aware UTC instants. Calendar boundaries (midnight, week start, first of month,
first of year) are computed in the household's configured timezone, so a
``DAY`` interval lasts 23 or 25 hours across daylight-saving transitions.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional

from . import config
from .models import TimeBucket


def as_utc(moment: datetime) -> datetime:
    """Return ``moment`` as an aware UTC datetime (naive values are taken as UTC)."""

    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def utcnow() -> datetime:
    """Return the current instant as aware UTC, the persisted timestamp form."""

    return datetime.now(timezone.utc)


def to_storage(moment: datetime) -> datetime:
    """Return the aware UTC form used for persisted timestamps."""

    return as_utc(moment)


def local_day(moment: datetime, tz: Optional[tzinfo] = None) -> date:
    """Return the calendar day ``moment`` falls on in ``tz``."""

    return as_utc(moment).astimezone(tz or config.TIMEZONE).date()


def start_of_day(day: date, tz: Optional[tzinfo] = None) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz or config.TIMEZONE)


@dataclass(slots=True, frozen=True)
class BucketInterval:
    """Half-open interval ``[start, end)``; a ``None`` bound is unbounded."""

    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @property
    def is_unbounded(self) -> bool:
        return self.start is None and self.end is None

    @property
    def duration(self) -> Optional[timedelta]:
        """Elapsed time between the bounds, measured in absolute (UTC) time."""

        if self.start is None or self.end is None:
            return None
        return as_utc(self.end) - as_utc(self.start)

    def contains(self, moment: datetime) -> bool:
        instant = as_utc(moment)
        if self.start is not None and instant < self.start:
            return False
        if self.end is not None and instant >= self.end:
            return False
        return True


def resolve_bucket_interval(
    bucket: TimeBucket,
    now: Optional[datetime] = None,
    *,
    tz: Optional[tzinfo] = None,
    week_start: Optional[int] = None,
) -> BucketInterval:
    """Return the interval covered by ``bucket`` as seen at ``now``.

    ``now`` defaults to the current wall-clock time and is never cached:
    calls on either side of a midnight or month rollover see different
    windows. ``week_start`` uses :meth:`datetime.weekday` numbering
    (Monday is 0) and defaults to the configured week start.
    """

    bucket = TimeBucket(bucket)
    if bucket is TimeBucket.LIFETIME:
        return BucketInterval()

    zone = tz or config.TIMEZONE
    first_weekday = config.WEEK_START if week_start is None else week_start
    current = as_utc(now or datetime.now(timezone.utc)).astimezone(zone)
    today = current.date()

    if bucket is TimeBucket.DAY:
        return BucketInterval(start_of_day(today, zone), start_of_day(today + timedelta(days=1), zone))
    if bucket is TimeBucket.WEEK:
        week_begins = today - timedelta(days=(today.weekday() - first_weekday) % 7)
        return BucketInterval(
            start_of_day(week_begins, zone),
            start_of_day(week_begins + timedelta(days=7), zone),
        )
    if bucket is TimeBucket.MONTH:
        month_begins = today.replace(day=1)
        if month_begins.month == 12:
            next_month = month_begins.replace(year=month_begins.year + 1, month=1)
        else:
            next_month = month_begins.replace(month=month_begins.month + 1)
        return BucketInterval(start_of_day(month_begins, zone), start_of_day(next_month, zone))
    # Year to date grows with every evaluation: the end bound is ``now`` itself.
    return BucketInterval(start_of_day(today.replace(month=1, day=1), zone), current)


__all__ = [
    "BucketInterval",
    "as_utc",
    "local_day",
    "resolve_bucket_interval",
    "start_of_day",
    "to_storage",
    "utcnow",
]
