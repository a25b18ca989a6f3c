"""Pure aggregate queries over a snapshot of the point ledger.

Every function takes the events to aggregate, a :class:`TimeBucket` and an
optional child, and never touches the data store. Events only need the
attributes of :class:`~dojopoints.models.LedgerEntry`: ``points``,
``timestamp``, ``child_id`` and ``category``.

Dangling references are tolerated rather than raised: an event whose
behavior is gone has no category and is left out of category breakdowns,
and an event whose child is gone still counts towards family-wide figures
but never towards a particular child.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime, tzinfo
from typing import Any, Dict, Iterable, List, Optional

from . import config
from .buckets import local_day, resolve_bucket_interval
from .models import BehaviorCategory, CategoryTotal, DailyTotal, LedgerEntry, TimeBucket

ChildLike = Any


def child_key(child: ChildLike) -> Optional[str]:
    """Return the identity used to match events to ``child`` (a record or an id)."""

    if child is None:
        return None
    if isinstance(child, str):
        return child
    return getattr(child, "id")


def filter_events(
    events: Iterable[LedgerEntry],
    bucket: TimeBucket,
    child: ChildLike = None,
    *,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
    week_start: Optional[int] = None,
) -> List[LedgerEntry]:
    """Return the events inside ``bucket`` and, when given, belonging to ``child``."""

    interval = resolve_bucket_interval(bucket, now, tz=tz, week_start=week_start)
    wanted = child_key(child)
    selected: List[LedgerEntry] = []
    for event in events:
        if wanted is not None and event.child_id != wanted:
            continue
        if not interval.contains(event.timestamp):
            continue
        selected.append(event)
    return selected


def total_points(
    events: Iterable[LedgerEntry],
    bucket: TimeBucket,
    child: ChildLike = None,
    *,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
    week_start: Optional[int] = None,
) -> int:
    """Sum of signed points in ``bucket``; may be negative."""

    selected = filter_events(events, bucket, child, now=now, tz=tz, week_start=week_start)
    return sum(event.points for event in selected)


def points_by_category(
    events: Iterable[LedgerEntry],
    bucket: TimeBucket,
    child: ChildLike = None,
    *,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
    week_start: Optional[int] = None,
) -> List[CategoryTotal]:
    """Earned points per category, largest first.

    Only positive awards count, so penalties never reduce a category and a
    category without any earned points is omitted. Equal totals are ordered
    by the category's internal key.
    """

    totals: Dict[BehaviorCategory, int] = {}
    for event in filter_events(events, bucket, child, now=now, tz=tz, week_start=week_start):
        if event.category is None or event.points <= 0:
            continue
        category = BehaviorCategory(event.category)
        totals[category] = totals.get(category, 0) + event.points
    return sorted(totals.items(), key=lambda item: (-item[1], item[0].value))


def cumulative_points_over_time(
    events: Iterable[LedgerEntry],
    bucket: TimeBucket,
    child: ChildLike = None,
    *,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
    week_start: Optional[int] = None,
) -> List[DailyTotal]:
    """Running total at the end of each day that has at least one event.

    Quiet days are absent rather than reported as zero; a chart should hold
    the previous value across the gap. The last entry always equals
    :func:`total_points` for the same filter.
    """

    zone = tz or config.TIMEZONE
    daily: Dict[date, int] = defaultdict(int)
    for event in filter_events(events, bucket, child, now=now, tz=zone, week_start=week_start):
        daily[local_day(event.timestamp, zone)] += event.points

    running = 0
    series: List[DailyTotal] = []
    for day in sorted(daily):
        running += daily[day]
        series.append((day, running))
    return series


__all__ = [
    "child_key",
    "cumulative_points_over_time",
    "filter_events",
    "points_by_category",
    "total_points",
]
