"""Goal progress derived from lifetime point totals."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Belt(str, Enum):
    """Martial-arts belt ranks shown on the progress ring, lowest first."""

    WHITE = "white"
    YELLOW = "yellow"
    ORANGE = "orange"
    GREEN = "green"
    BLUE = "blue"
    PURPLE = "purple"
    BROWN = "brown"
    BLACK = "black"


_BELTS = tuple(Belt)


@dataclass(slots=True, frozen=True)
class GoalProgress:
    """Progress of ``earned`` lifetime points towards a ``threshold``.

    A threshold of zero means no goal has been set and progress stays at 0.
    """

    earned: int
    threshold: int

    @property
    def has_goal(self) -> bool:
        return self.threshold > 0

    @property
    def ratio(self) -> float:
        """Raw ratio; exceeds 1.0 once the goal is surpassed."""

        if not self.has_goal:
            return 0.0
        return self.earned / self.threshold

    @property
    def clamped(self) -> float:
        """Ratio limited to ``[0, 1]`` for ring rendering."""

        return min(max(self.ratio, 0.0), 1.0)

    @property
    def percent(self) -> int:
        if not self.has_goal:
            return 0
        return min(max(self.earned * 100 // self.threshold, 0), 100)

    @property
    def reached(self) -> bool:
        return self.has_goal and self.earned >= self.threshold

    @property
    def exceeded(self) -> bool:
        return self.has_goal and self.earned > self.threshold

    @property
    def remaining(self) -> int:
        if not self.has_goal:
            return 0
        return max(self.threshold - self.earned, 0)

    @property
    def belt(self) -> Belt:
        index = int(self.clamped * (len(_BELTS) - 1))
        return _BELTS[min(index, len(_BELTS) - 1)]


def goal_progress(earned: int, threshold: int) -> GoalProgress:
    return GoalProgress(earned=earned, threshold=threshold)


def goal_crossed(before: int, after: int, threshold: int) -> bool:
    """True when moving from ``before`` to ``after`` points first reaches ``threshold``.

    Celebrations fire on this transition; remembering whether one already
    fired is left to the caller.
    """

    if threshold <= 0:
        return False
    return before < threshold <= after


__all__ = ["Belt", "GoalProgress", "goal_crossed", "goal_progress"]
