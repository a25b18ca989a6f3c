"""High level service coordinating children, behaviors and point awards."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from typing import List, Optional

from . import config
from .admin import UndoManager
from .aggregation import cumulative_points_over_time, points_by_category, total_points
from .buckets import BucketInterval, resolve_bucket_interval, to_storage
from .exceptions import BehaviorNotFoundError, BuiltinBehaviorError, ChildNotFoundError
from .goals import GoalProgress, goal_crossed, goal_progress
from .models import BehaviorCategory, CategoryTotal, DailyTotal, LedgerEntry, ProgressReport, TimeBucket
from .ops import StructuredLogger
from .persistence import Behavior, Child, DataStore, FamilyGoal, PointEvent
from .seed import generate_test_data, seed_builtins_if_needed
from .validation import require_goal_points, require_nonzero_points, require_text


@dataclass(slots=True)
class AwardResult:
    """Outcome of awarding a behavior to a child."""

    event: PointEvent
    lifetime_total: int
    progress: GoalProgress
    crossed_goal: bool

    @property
    def goal_reached(self) -> bool:
        return self.progress.reached


class DojoPoints:
    """Manage a household's children, behaviors, point ledger and goals."""

    __slots__ = ("_store", "_undo", "_logger", "_tz", "_week_start")

    def __init__(
        self,
        store: Optional[DataStore] = None,
        *,
        tz: Optional[tzinfo] = None,
        week_start: Optional[int] = None,
        undo_window_seconds: Optional[int] = None,
        logger: Optional[StructuredLogger] = None,
        seed: bool = True,
    ) -> None:
        if store is None:
            self._logger = logger or StructuredLogger(path=config.LOG_PATH)
            store = DataStore(logger=self._logger)
        else:
            self._logger = logger or store.logger
            store.logger = self._logger
        self._store = store
        self._tz = tz or config.TIMEZONE
        self._week_start = config.WEEK_START if week_start is None else week_start
        window = config.UNDO_WINDOW_SECONDS if undo_window_seconds is None else undo_window_seconds
        self._undo = UndoManager(window_seconds=window)
        if seed and seed_builtins_if_needed(self._store):
            self._logger.log("builtins_seeded")

    @property
    def store(self) -> DataStore:
        return self._store

    @property
    def logger(self) -> StructuredLogger:
        return self._logger

    # ------------------------------------------------------------------
    # Children
    # ------------------------------------------------------------------
    def add_child(self, name: str, avatar: str, *, goal_points: int = 0, goal_reward: str = "") -> Child:
        child = Child(
            name=require_text(name),
            avatar=require_text(avatar, field="avatar"),
            goal_points=require_goal_points(goal_points),
            goal_reward=goal_reward.strip(),
        )
        with self._store.atomic():
            self._store.insert(child)
        self._logger.log("child_added", child=child.id, name=child.name)
        return child

    def get_child(self, child_id: str) -> Child:
        child = self._store.get(Child, child_id)
        if child is None:
            raise ChildNotFoundError(f"Child '{child_id}' does not exist.")
        return child

    def list_children(self, *, include_archived: bool = False) -> List[Child]:
        predicate = None if include_archived else Child.archived == False  # noqa: E712
        return self._store.query(Child, predicate, sort=Child.name)

    def archived_children(self) -> List[Child]:
        return self._store.query(Child, Child.archived == True, sort=Child.name)  # noqa: E712

    def update_child(
        self,
        child_id: str,
        *,
        name: Optional[str] = None,
        avatar: Optional[str] = None,
        goal_points: Optional[int] = None,
        goal_reward: Optional[str] = None,
    ) -> Child:
        child = self.get_child(child_id)
        with self._store.atomic():
            if name is not None:
                child.name = require_text(name)
            if avatar is not None:
                child.avatar = require_text(avatar, field="avatar")
            if goal_points is not None:
                child.goal_points = require_goal_points(goal_points)
            if goal_reward is not None:
                child.goal_reward = goal_reward.strip()
            self._store.insert(child)
        self._logger.log("child_updated", child=child.id)
        return child

    def archive_child(self, child_id: str) -> Child:
        return self._set_archived(child_id, True)

    def restore_child(self, child_id: str) -> Child:
        return self._set_archived(child_id, False)

    def delete_child(self, child_id: str) -> int:
        """Delete a child together with its point events; returns the number of events removed."""

        child = self.get_child(child_id)
        events = self._store.query(PointEvent, PointEvent.child_id == child.id)
        with self._store.atomic():
            self._store.delete_where(PointEvent, PointEvent.child_id == child.id)
            self._store.delete(child)
        for event in events:
            self._undo.discard(event.id)
        self._logger.log("child_deleted", child=child_id, events=len(events))
        return len(events)

    # ------------------------------------------------------------------
    # Behaviors
    # ------------------------------------------------------------------
    def add_behavior(
        self,
        name: str,
        category: BehaviorCategory | str,
        glyph: str,
        points: int,
    ) -> Behavior:
        behavior = Behavior(
            name=require_text(name),
            category=BehaviorCategory(category),
            glyph=require_text(glyph, field="glyph"),
            points=require_nonzero_points(points),
            builtin=False,
        )
        with self._store.atomic():
            self._store.insert(behavior)
        self._logger.log("behavior_added", behavior=behavior.id, name=behavior.name, points=behavior.points)
        return behavior

    def get_behavior(self, behavior_id: str) -> Behavior:
        behavior = self._store.get(Behavior, behavior_id)
        if behavior is None:
            raise BehaviorNotFoundError(f"Behavior '{behavior_id}' does not exist.")
        return behavior

    def list_behaviors(self, *, category: BehaviorCategory | str | None = None) -> List[Behavior]:
        """Behaviors grouped by category internal key, then alphabetically."""

        predicate = None if category is None else Behavior.category == BehaviorCategory(category)
        return self._store.query(Behavior, predicate, sort=(Behavior.category, Behavior.name))

    def award_options(self, *, category: BehaviorCategory | str | None = None) -> List[Behavior]:
        """Behaviors in award-grid order: biggest reward first, penalties last."""

        return sorted(self.list_behaviors(category=category), key=lambda behavior: -behavior.points)

    def update_behavior(
        self,
        behavior_id: str,
        *,
        name: Optional[str] = None,
        category: BehaviorCategory | str | None = None,
        glyph: Optional[str] = None,
        points: Optional[int] = None,
    ) -> Behavior:
        """Edit a custom behavior. Past events keep the points they were awarded with."""

        behavior = self._require_custom(behavior_id, "edited")
        with self._store.atomic():
            if name is not None:
                behavior.name = require_text(name)
            if category is not None:
                behavior.category = BehaviorCategory(category)
            if glyph is not None:
                behavior.glyph = require_text(glyph, field="glyph")
            if points is not None:
                behavior.points = require_nonzero_points(points)
            self._store.insert(behavior)
        self._logger.log("behavior_updated", behavior=behavior.id)
        return behavior

    def delete_behavior(self, behavior_id: str) -> None:
        """Delete a custom behavior, keeping its historical events as uncategorised points."""

        behavior = self._require_custom(behavior_id, "deleted")
        with self._store.atomic():
            self._store.orphan_events_of_behavior(behavior.id)
            self._store.delete(behavior)
        self._logger.log("behavior_deleted", behavior=behavior_id)

    # ------------------------------------------------------------------
    # Awards and undo
    # ------------------------------------------------------------------
    def award_points(
        self,
        child_id: str,
        behavior_id: str,
        *,
        at: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> AwardResult:
        """Record an award stamped ``at`` (default ``now``).

        The undo window always opens at ``now``, the moment the award is made,
        so a backdated award can still be undone right away.
        """

        awarded_at = now or datetime.now(timezone.utc)
        child = self.get_child(child_id)
        behavior = self.get_behavior(behavior_id)
        before = self.total_points(TimeBucket.LIFETIME, child.id)
        event = PointEvent(
            child_id=child.id,
            behavior_id=behavior.id,
            points=behavior.points,
            timestamp=to_storage(at or awarded_at),
        )
        with self._store.atomic():
            self._store.insert(event)
        after = before + event.points
        self._undo.register(event.id, lambda: self.undo_award(event.id), timestamp=awarded_at)
        self._logger.log(
            "points_awarded",
            child=child.id,
            behavior=behavior.id,
            points=event.points,
            event_id=event.id,
        )
        return AwardResult(
            event=event,
            lifetime_total=after,
            progress=goal_progress(after, child.goal_points),
            crossed_goal=goal_crossed(before, after, child.goal_points),
        )

    def undo_award(self, event_id: str) -> bool:
        """Remove one award by identity; returns ``False`` when it is already gone."""

        event = self._store.get(PointEvent, event_id)
        if event is None:
            return False
        with self._store.atomic():
            self._store.delete(event)
        self._undo.discard(event_id)
        self._logger.log("award_undone", event_id=event_id, points=event.points)
        return True

    def pending_undo(self, *, at: Optional[datetime] = None) -> Optional[str]:
        return self._undo.pending(at=at)

    def undo_last_award(self, *, at: Optional[datetime] = None) -> str:
        """Undo the latest award while its window is open.

        Raises :class:`LookupError` when nothing is pending or the award is
        already gone, and :class:`TimeoutError` once the window has passed.
        """

        return self._undo.undo(at=at)

    # ------------------------------------------------------------------
    # Goals
    # ------------------------------------------------------------------
    def family_goal(self) -> FamilyGoal:
        return self._store.family_goal()

    def update_family_goal(self, goal_points: int, goal_reward: str) -> FamilyGoal:
        goal = self._store.family_goal()
        with self._store.atomic():
            goal.goal_points = require_goal_points(goal_points)
            goal.goal_reward = goal_reward.strip()
            self._store.insert(goal)
        self._logger.log("family_goal_updated", points=goal.goal_points)
        return goal

    def child_progress(self, child_id: str) -> GoalProgress:
        child = self.get_child(child_id)
        return goal_progress(self.total_points(TimeBucket.LIFETIME, child.id), child.goal_points)

    def family_progress(self) -> GoalProgress:
        goal = self.family_goal()
        return goal_progress(self.total_points(TimeBucket.LIFETIME), goal.goal_points)

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------
    def ledger(self) -> List[LedgerEntry]:
        return self._store.ledger()

    def bucket_interval(self, bucket: TimeBucket, *, now: Optional[datetime] = None) -> BucketInterval:
        return resolve_bucket_interval(bucket, now, tz=self._tz, week_start=self._week_start)

    def total_points(
        self, bucket: TimeBucket, child_id: Optional[str] = None, *, now: Optional[datetime] = None
    ) -> int:
        return total_points(self.ledger(), bucket, child_id, now=now, tz=self._tz, week_start=self._week_start)

    def points_by_category(
        self, bucket: TimeBucket, child_id: Optional[str] = None, *, now: Optional[datetime] = None
    ) -> List[CategoryTotal]:
        return points_by_category(
            self.ledger(), bucket, child_id, now=now, tz=self._tz, week_start=self._week_start
        )

    def points_over_time(
        self, bucket: TimeBucket, child_id: Optional[str] = None, *, now: Optional[datetime] = None
    ) -> List[DailyTotal]:
        return cumulative_points_over_time(
            self.ledger(), bucket, child_id, now=now, tz=self._tz, week_start=self._week_start
        )

    def child_report(self, child_id: str, bucket: TimeBucket, *, now: Optional[datetime] = None) -> ProgressReport:
        child = self.get_child(child_id)
        return self._report(bucket, child, now=now)

    def family_report(self, bucket: TimeBucket, *, now: Optional[datetime] = None) -> ProgressReport:
        return self._report(bucket, None, now=now)

    def summary(self, bucket: TimeBucket = TimeBucket.DAY, *, now: Optional[datetime] = None) -> str:
        bucket = TimeBucket(bucket)
        children = self.list_children()
        if not children:
            return "No children added yet."
        events = self.ledger()
        options = {"now": now, "tz": self._tz, "week_start": self._week_start}
        lines = [f"DojoPoints summary ({bucket.display_name}):"]
        for child in children:
            points = total_points(events, bucket, child, **options)
            line = f"- {child.avatar} {child.name}: {points} points"
            if child.goal_points > 0:
                lifetime = total_points(events, TimeBucket.LIFETIME, child)
                line += f" ({lifetime} / {child.goal_points} towards {child.goal_reward or 'goal'})"
            lines.append(line)
        goal = self.family_goal()
        lines.append(f"Family total: {total_points(events, bucket, **options)} points")
        if goal.goal_points > 0:
            progress = goal_progress(total_points(events, TimeBucket.LIFETIME), goal.goal_points)
            lines.append(f"Family goal: {progress.percent}% of {goal.goal_points} points for {goal.goal_reward}")
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------
    def reset_all_data(self) -> None:
        """Remove children, events and custom behaviors; built-ins stay and are re-seeded if missing."""

        with self._store.atomic():
            self._store.delete_where(PointEvent, PointEvent.id.is_not(None))
            self._store.delete_where(Child, Child.id.is_not(None))
            self._store.delete_where(Behavior, Behavior.builtin == False)  # noqa: E712
        self._undo.discard()
        seed_builtins_if_needed(self._store)
        self._logger.log("data_reset")

    def generate_test_data(
        self, *, days_back: int = 30, seed: Optional[int] = None, now: Optional[datetime] = None
    ) -> int:
        created = generate_test_data(self._store, days_back=days_back, seed=seed, now=now, tz=self._tz)
        self._logger.log("test_data_generated", events=created, days=days_back)
        return created

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _set_archived(self, child_id: str, archived: bool) -> Child:
        child = self.get_child(child_id)
        with self._store.atomic():
            child.archived = archived
            self._store.insert(child)
        self._logger.log("child_archived" if archived else "child_restored", child=child.id)
        return child

    def _require_custom(self, behavior_id: str, action: str) -> Behavior:
        behavior = self.get_behavior(behavior_id)
        if behavior.builtin:
            raise BuiltinBehaviorError(f"Built-in behavior '{behavior.name}' cannot be {action}.")
        return behavior

    def _report(self, bucket: TimeBucket, child: Optional[Child], *, now: Optional[datetime]) -> ProgressReport:
        events = self.ledger()
        options = {"now": now, "tz": self._tz, "week_start": self._week_start}
        if child is None:
            threshold = self.family_goal().goal_points
        else:
            threshold = child.goal_points
        return ProgressReport(
            bucket=TimeBucket(bucket),
            total_points=total_points(events, bucket, child, **options),
            by_category=points_by_category(events, bucket, child, **options),
            over_time=cumulative_points_over_time(events, bucket, child, **options),
            progress=goal_progress(total_points(events, TimeBucket.LIFETIME, child), threshold),
            child_id=None if child is None else child.id,
        )


__all__ = ["AwardResult", "DojoPoints"]
