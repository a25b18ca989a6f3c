"""Domain value types used by the DojoPoints package."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Tuple

if TYPE_CHECKING:
    from .goals import GoalProgress


class BehaviorCategory(str, Enum):
    """Closed set of behavior categories; values are the stored internal keys."""

    LISTENING = "Listening"
    CHORES = "Chores"
    HYGIENE = "Hygiene"
    EATING = "Eating"
    SELF_CARE = "SelfCare"
    LEARNING = "Learning"

    @property
    def display_name(self) -> str:
        return _CATEGORY_DISPLAY_NAMES[self]


_CATEGORY_DISPLAY_NAMES = {
    BehaviorCategory.LISTENING: "Listening & Manners",
    BehaviorCategory.CHORES: "Chores",
    BehaviorCategory.HYGIENE: "Hygiene",
    BehaviorCategory.EATING: "Eating",
    BehaviorCategory.SELF_CARE: "Self-Care",
    BehaviorCategory.LEARNING: "Learning",
}


class TimeBucket(str, Enum):
    """Named reporting windows offered by the dashboard picker."""

    DAY = "Day"
    WEEK = "Week"
    MONTH = "Month"
    YEAR_TO_DATE = "YTD"
    LIFETIME = "Lifetime"

    @property
    def display_name(self) -> str:
        return _BUCKET_DISPLAY_NAMES[self]


_BUCKET_DISPLAY_NAMES = {
    TimeBucket.DAY: "Today",
    TimeBucket.WEEK: "This Week",
    TimeBucket.MONTH: "This Month",
    TimeBucket.YEAR_TO_DATE: "Year to Date",
    TimeBucket.LIFETIME: "All Time",
}


CategoryTotal = Tuple[BehaviorCategory, int]
DailyTotal = Tuple[date, int]


@dataclass(slots=True, frozen=True)
class LedgerEntry:
    """Read-only snapshot of one point event joined with its behavior's category.

    ``child_id`` and ``category`` are ``None`` when the referenced child or
    behavior no longer exists.
    """

    event_id: str
    points: int
    timestamp: datetime
    child_id: Optional[str] = None
    behavior_id: Optional[str] = None
    category: Optional[BehaviorCategory] = None


@dataclass(slots=True, frozen=True)
class BuiltinBehavior:
    """Catalogue entry used when seeding built-in behaviors."""

    name: str
    category: BehaviorCategory
    glyph: str
    points: int


@dataclass(slots=True)
class ProgressReport:
    """Aggregates shown on a child or family dashboard for one bucket."""

    bucket: TimeBucket
    total_points: int
    by_category: List[CategoryTotal] = field(default_factory=list)
    over_time: List[DailyTotal] = field(default_factory=list)
    progress: Optional[GoalProgress] = None
    child_id: Optional[str] = None


__all__ = [
    "BehaviorCategory",
    "BuiltinBehavior",
    "CategoryTotal",
    "DailyTotal",
    "LedgerEntry",
    "ProgressReport",
    "TimeBucket",
]
