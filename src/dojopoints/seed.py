"""Built-in behavior catalogue and developer sample data."""

from __future__ import annotations

import random
from datetime import datetime, time, timedelta, timezone, tzinfo
from typing import Optional, Tuple

from . import config
from .buckets import local_day, to_storage
from .models import BehaviorCategory, BuiltinBehavior
from .persistence import FAMILY_GOAL_ID, Behavior, Child, DataStore, FamilyGoal, PointEvent

BUILTIN_BEHAVIORS: Tuple[BuiltinBehavior, ...] = (
    BuiltinBehavior("First-time listening", BehaviorCategory.LISTENING, "⭐️", 3),
    BuiltinBehavior("No whining", BehaviorCategory.LISTENING, "🤫", 5),
    BuiltinBehavior("2+ asks without listening", BehaviorCategory.LISTENING, "⚠️", -1),
    BuiltinBehavior("Meltdown", BehaviorCategory.LISTENING, "💥", -5),
    BuiltinBehavior("Making bed", BehaviorCategory.CHORES, "🛏️", 1),
    BuiltinBehavior("Clearing dishes", BehaviorCategory.CHORES, "🍽️", 1),
    BuiltinBehavior("Getting clean", BehaviorCategory.HYGIENE, "🧼", 1),
    BuiltinBehavior("Brushing teeth", BehaviorCategory.HYGIENE, "🪥", 1),
    BuiltinBehavior("Eating veggies", BehaviorCategory.EATING, "🥦", 4),
    BuiltinBehavior("Getting dressed by self", BehaviorCategory.SELF_CARE, "👕", 2),
    BuiltinBehavior("Doing reading", BehaviorCategory.LEARNING, "📚", 1),
)

SAMPLE_CHILDREN: Tuple[Tuple[str, str, int, str], ...] = (
    ("Emma", "👧", 50, "Ice cream 🍦"),
    ("Noah", "👦", 75, "New toy 🧸"),
)


def seed_builtins_if_needed(store: DataStore) -> bool:
    """Insert the built-in behaviors and default family goal on first run.

    Returns ``False`` without touching the store when any behavior exists.
    """

    if store.query(Behavior):
        return False
    with store.atomic():
        for entry in BUILTIN_BEHAVIORS:
            store.insert(
                Behavior(
                    name=entry.name,
                    category=entry.category,
                    glyph=entry.glyph,
                    points=entry.points,
                    builtin=True,
                )
            )
        if store.get(FamilyGoal, FAMILY_GOAL_ID) is None:
            store.insert(
                FamilyGoal(
                    id=FAMILY_GOAL_ID,
                    goal_points=config.DEFAULT_FAMILY_GOAL_POINTS,
                    goal_reward=config.DEFAULT_FAMILY_GOAL_REWARD,
                )
            )
    return True


def generate_test_data(
    store: DataStore,
    *,
    days_back: int = 30,
    seed: Optional[int] = None,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> int:
    """Fill the ledger with 2-8 random awards per day for the past ``days_back`` days.

    Two sample children are created when the household has none. Returns
    the number of events written.
    """

    rng = random.Random(seed)
    zone = tz or config.TIMEZONE
    children = store.query(Child)
    behaviors = store.query(Behavior, sort=(Behavior.category, Behavior.name))
    if not behaviors:
        return 0

    created = 0
    with store.atomic():
        if not children:
            children = [
                store.insert(Child(name=name, avatar=avatar, goal_points=goal_points, goal_reward=reward))
                for name, avatar, goal_points, reward in SAMPLE_CHILDREN
            ]
        today = local_day(now or datetime.now(timezone.utc), zone)
        for offset in range(days_back):
            day = today - timedelta(days=offset)
            for _ in range(rng.randint(2, 8)):
                child = rng.choice(children)
                behavior = rng.choice(behaviors)
                moment = datetime.combine(day, time(rng.randint(7, 21), rng.randint(0, 59)), tzinfo=zone)
                store.insert(
                    PointEvent(
                        child_id=child.id,
                        behavior_id=behavior.id,
                        points=behavior.points,
                        timestamp=to_storage(moment),
                    )
                )
                created += 1
    return created


__all__ = ["BUILTIN_BEHAVIORS", "SAMPLE_CHILDREN", "generate_test_data", "seed_builtins_if_needed"]
