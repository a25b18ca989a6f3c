"""DojoPoints package for tracking children's behavior with reward points."""

from .admin import UndoManager
from .aggregation import cumulative_points_over_time, filter_events, points_by_category, total_points
from .buckets import BucketInterval, resolve_bucket_interval
from .exceptions import (
    BehaviorNotFoundError,
    BuiltinBehaviorError,
    ChildNotFoundError,
    ConfigurationError,
    DanglingReferenceError,
    DojoPointsError,
    StorageError,
    ValidationError,
)
from .goals import Belt, GoalProgress, goal_crossed, goal_progress
from .models import BehaviorCategory, BuiltinBehavior, LedgerEntry, ProgressReport, TimeBucket
from .ops import StructuredLogger
from .persistence import Behavior, Child, DataStore, FamilyGoal, PointEvent
from .seed import BUILTIN_BEHAVIORS, generate_test_data, seed_builtins_if_needed
from .service import AwardResult, DojoPoints

__all__ = [
    "AwardResult",
    "BUILTIN_BEHAVIORS",
    "Behavior",
    "BehaviorCategory",
    "BehaviorNotFoundError",
    "Belt",
    "BucketInterval",
    "BuiltinBehavior",
    "BuiltinBehaviorError",
    "Child",
    "ChildNotFoundError",
    "ConfigurationError",
    "DanglingReferenceError",
    "DataStore",
    "DojoPoints",
    "DojoPointsError",
    "FamilyGoal",
    "GoalProgress",
    "LedgerEntry",
    "PointEvent",
    "ProgressReport",
    "StorageError",
    "StructuredLogger",
    "TimeBucket",
    "UndoManager",
    "ValidationError",
    "cumulative_points_over_time",
    "filter_events",
    "generate_test_data",
    "goal_crossed",
    "goal_progress",
    "points_by_category",
    "resolve_bucket_interval",
    "seed_builtins_if_needed",
    "total_points",
]
