"""Input checks applied before values reach the data store."""

from __future__ import annotations

from .exceptions import ValidationError


def require_text(value: str, *, field: str = "name") -> str:
    """Return ``value`` stripped of surrounding whitespace, rejecting empty text."""

    if value is None:
        raise ValidationError(f"{field} must not be empty.")
    cleaned = str(value).strip()
    if not cleaned:
        raise ValidationError(f"{field} must not be empty.")
    return cleaned


def require_nonzero_points(points: int) -> int:
    """Ensure a behavior's point value is a nonzero integer."""

    if isinstance(points, bool) or not isinstance(points, int):
        raise ValidationError(f"points must be an integer, got {points!r}.")
    if points == 0:
        raise ValidationError("points must not be zero.")
    return points


def require_goal_points(points: int) -> int:
    """Ensure a goal threshold is zero (no goal) or greater."""

    if isinstance(points, bool) or not isinstance(points, int):
        raise ValidationError(f"goal points must be an integer, got {points!r}.")
    if points < 0:
        raise ValidationError("goal points must be zero or greater.")
    return points


__all__ = ["require_goal_points", "require_nonzero_points", "require_text"]
