from datetime import date, datetime, timedelta, timezone

import pytest

from dojopoints.exceptions import (
    BehaviorNotFoundError,
    BuiltinBehaviorError,
    ChildNotFoundError,
    StorageError,
    ValidationError,
)
from dojopoints.models import BehaviorCategory, TimeBucket
from dojopoints.persistence import Child, DataStore, PointEvent
from dojopoints.seed import BUILTIN_BEHAVIORS
from dojopoints.service import DojoPoints

UTC = timezone.utc
NOON = datetime(2024, 5, 15, 12, 0, tzinfo=UTC)


@pytest.fixture()
def db_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'dojopoints.db'}"


@pytest.fixture()
def app(db_url):
    store = DataStore(db_url)
    service = DojoPoints(store, tz=UTC, week_start=6, undo_window_seconds=15)
    yield service
    store.close()


def behavior_named(app: DojoPoints, name: str):
    return next(behavior for behavior in app.list_behaviors() if behavior.name == name)


def test_builtins_and_family_goal_are_seeded_once(app: DojoPoints, db_url: str) -> None:
    assert len(app.list_behaviors()) == len(BUILTIN_BEHAVIORS)
    assert all(behavior.builtin for behavior in app.list_behaviors())
    goal = app.family_goal()
    assert goal.goal_points == 100
    assert "Movie Night" in goal.goal_reward

    with DataStore(db_url) as store:
        DojoPoints(store, tz=UTC)
        assert len(store.query(type(goal))) == 1
    assert len(app.list_behaviors()) == len(BUILTIN_BEHAVIORS)
    assert app.logger.entries("builtins_seeded")


def test_behaviors_are_listed_by_category_key_then_name(app: DojoPoints) -> None:
    categories = [behavior.category.value for behavior in app.list_behaviors()]
    assert categories == sorted(categories)

    listening = app.list_behaviors(category="Listening")
    assert [behavior.name for behavior in listening] == [
        "2+ asks without listening",
        "First-time listening",
        "Meltdown",
        "No whining",
    ]
    assert [behavior.points for behavior in app.award_options(category=BehaviorCategory.LISTENING)] == [5, 3, -1, -5]


def test_child_validation(app: DojoPoints) -> None:
    with pytest.raises(ValidationError):
        app.add_child("  ", "👧")
    with pytest.raises(ValidationError):
        app.add_child("Ann", "")
    with pytest.raises(ValidationError):
        app.add_child("Ann", "👧", goal_points=-1)


def test_behavior_validation(app: DojoPoints) -> None:
    with pytest.raises(ValidationError):
        app.add_behavior("", BehaviorCategory.CHORES, "🧹", 1)
    with pytest.raises(ValidationError):
        app.add_behavior("Sweeping", BehaviorCategory.CHORES, "🧹", 0)
    with pytest.raises(ValidationError):
        app.add_behavior("Sweeping", BehaviorCategory.CHORES, " ", 1)
    with pytest.raises(ValueError):
        app.add_behavior("Sweeping", "Gardening", "🧹", 1)


def test_award_totals_for_child(app: DojoPoints) -> None:
    ann = app.add_child("Ann", "👧")
    listening = behavior_named(app, "First-time listening")
    asks = behavior_named(app, "2+ asks without listening")

    app.award_points(ann.id, listening.id, at=datetime(2024, 5, 13, 9, tzinfo=UTC))
    app.award_points(ann.id, asks.id, at=datetime(2024, 5, 14, 9, tzinfo=UTC))

    assert app.total_points(TimeBucket.LIFETIME, ann.id) == 2
    assert app.total_points(TimeBucket.DAY, ann.id, now=NOON) == 0
    assert app.total_points(TimeBucket.WEEK, ann.id, now=NOON) == 2
    assert app.points_by_category(TimeBucket.LIFETIME, ann.id) == [(BehaviorCategory.LISTENING, 3)]
    assert app.points_over_time(TimeBucket.LIFETIME, ann.id) == [(date(2024, 5, 13), 3), (date(2024, 5, 14), 2)]


def test_award_requires_existing_records(app: DojoPoints) -> None:
    ann = app.add_child("Ann", "👧")
    reading = behavior_named(app, "Doing reading")

    with pytest.raises(ChildNotFoundError):
        app.award_points("nobody", reading.id)
    with pytest.raises(BehaviorNotFoundError):
        app.award_points(ann.id, "nothing")
    assert app.ledger() == []


def test_award_points_are_frozen_at_creation(app: DojoPoints) -> None:
    ann = app.add_child("Ann", "👧")
    sweeping = app.add_behavior("Sweeping", BehaviorCategory.CHORES, "🧹", 2)
    app.award_points(ann.id, sweeping.id, at=NOON)

    app.update_behavior(sweeping.id, points=10)
    app.award_points(ann.id, sweeping.id, at=NOON)

    assert app.total_points(TimeBucket.LIFETIME, ann.id) == 12


def test_builtins_cannot_be_changed(app: DojoPoints) -> None:
    meltdown = behavior_named(app, "Meltdown")

    with pytest.raises(BuiltinBehaviorError):
        app.update_behavior(meltdown.id, points=-1)
    with pytest.raises(BuiltinBehaviorError):
        app.delete_behavior(meltdown.id)
    assert behavior_named(app, "Meltdown").points == -5


def test_deleting_custom_behavior_keeps_history(app: DojoPoints) -> None:
    ann = app.add_child("Ann", "👧")
    sweeping = app.add_behavior("Sweeping", BehaviorCategory.CHORES, "🧹", 4)
    teeth = behavior_named(app, "Brushing teeth")
    app.award_points(ann.id, sweeping.id, at=NOON)
    app.award_points(ann.id, teeth.id, at=NOON)

    app.delete_behavior(sweeping.id)

    assert app.total_points(TimeBucket.LIFETIME, ann.id) == 5
    assert app.points_by_category(TimeBucket.LIFETIME, ann.id) == [(BehaviorCategory.HYGIENE, 1)]
    with pytest.raises(BehaviorNotFoundError):
        app.get_behavior(sweeping.id)


def test_delete_child_cascades_to_events(app: DojoPoints) -> None:
    ann = app.add_child("Ann", "👧")
    ben = app.add_child("Ben", "👦")
    veggies = behavior_named(app, "Eating veggies")
    app.award_points(ben.id, veggies.id, at=NOON)
    app.award_points(ann.id, veggies.id, at=NOON)
    app.award_points(ann.id, veggies.id, at=NOON)

    removed = app.delete_child(ann.id)

    assert removed == 2
    assert app.total_points(TimeBucket.LIFETIME) == 4
    assert all(entry.child_id == ben.id for entry in app.ledger())
    with pytest.raises(ChildNotFoundError):
        app.get_child(ann.id)
    with pytest.raises(LookupError):
        app.undo_last_award(at=NOON)


def test_archive_and_restore(app: DojoPoints) -> None:
    ann = app.add_child("Ann", "👧")
    app.add_child("Bea", "🧒")

    app.archive_child(ann.id)
    assert [child.name for child in app.list_children()] == ["Bea"]
    assert [child.name for child in app.archived_children()] == ["Ann"]
    assert [child.name for child in app.list_children(include_archived=True)] == ["Ann", "Bea"]

    app.restore_child(ann.id)
    assert [child.name for child in app.list_children()] == ["Ann", "Bea"]


def test_update_child(app: DojoPoints) -> None:
    ann = app.add_child("Ann", "👧")

    updated = app.update_child(ann.id, name="Annie", goal_points=30, goal_reward=" Ice cream ")

    assert updated.name == "Annie"
    assert app.get_child(ann.id).goal_reward == "Ice cream"
    with pytest.raises(ValidationError):
        app.update_child(ann.id, name="")


def test_undo_of_unknown_event_is_a_no_op(app: DojoPoints) -> None:
    ann = app.add_child("Ann", "👧")
    app.award_points(ann.id, behavior_named(app, "Making bed").id, at=NOON)
    before = app.ledger()

    assert app.undo_award("not-an-event") is False
    assert app.ledger() == before


def test_undo_award_removes_event_once(app: DojoPoints) -> None:
    ann = app.add_child("Ann", "👧")
    result = app.award_points(ann.id, behavior_named(app, "Making bed").id, at=NOON)

    assert app.undo_award(result.event.id) is True
    assert app.undo_award(result.event.id) is False
    assert app.store.get(PointEvent, result.event.id) is None
    assert app.total_points(TimeBucket.LIFETIME) == 0


def test_undo_last_award_within_window(app: DojoPoints) -> None:
    ann = app.add_child("Ann", "👧")
    result = app.award_points(ann.id, behavior_named(app, "No whining").id, now=NOON)

    assert app.pending_undo(at=NOON + timedelta(seconds=5)) == result.event.id
    assert app.undo_last_award(at=NOON + timedelta(seconds=10)) == result.event.id
    assert app.total_points(TimeBucket.LIFETIME, ann.id) == 0
    with pytest.raises(LookupError):
        app.undo_last_award(at=NOON + timedelta(seconds=11))


def test_undo_window_expires(app: DojoPoints) -> None:
    ann = app.add_child("Ann", "👧")
    app.award_points(ann.id, behavior_named(app, "No whining").id, now=NOON)

    assert app.pending_undo(at=NOON + timedelta(seconds=16)) is None
    with pytest.raises(TimeoutError):
        app.undo_last_award(at=NOON + timedelta(seconds=16))
    assert app.total_points(TimeBucket.LIFETIME, ann.id) == 5


def test_new_award_makes_previous_permanent(app: DojoPoints) -> None:
    ann = app.add_child("Ann", "👧")
    first = app.award_points(ann.id, behavior_named(app, "No whining").id, now=NOON)
    second = app.award_points(ann.id, behavior_named(app, "Making bed").id, now=NOON + timedelta(seconds=2))

    assert app.undo_last_award(at=NOON + timedelta(seconds=3)) == second.event.id
    with pytest.raises(LookupError):
        app.undo_last_award(at=NOON + timedelta(seconds=4))
    assert [entry.event_id for entry in app.ledger()] == [first.event.id]


def test_award_reports_goal_progress(app: DojoPoints) -> None:
    ann = app.add_child("Ann", "👧", goal_points=8, goal_reward="Ice cream 🍦")
    whining = behavior_named(app, "No whining")

    first = app.award_points(ann.id, whining.id, at=NOON)
    second = app.award_points(ann.id, whining.id, at=NOON)
    third = app.award_points(ann.id, whining.id, at=NOON)

    assert not first.goal_reached and not first.crossed_goal
    assert second.goal_reached and second.crossed_goal
    assert second.lifetime_total == 10
    assert second.progress.ratio == pytest.approx(1.25)
    assert third.goal_reached and not third.crossed_goal
    assert app.child_progress(ann.id).clamped == 1.0


def test_family_goal_progress(app: DojoPoints) -> None:
    ann = app.add_child("Ann", "👧")
    ben = app.add_child("Ben", "👦")
    whining = behavior_named(app, "No whining")

    app.update_family_goal(20, "Zoo trip")
    for child in (ann, ben, ann, ben):
        app.award_points(child.id, whining.id, at=NOON)

    progress = app.family_progress()
    assert app.family_goal().goal_reward == "Zoo trip"
    assert progress.ratio == 1.0
    assert progress.reached
    with pytest.raises(ValidationError):
        app.update_family_goal(-5, "Nothing")


def test_reports(app: DojoPoints) -> None:
    ann = app.add_child("Ann", "👧", goal_points=10)
    app.award_points(ann.id, behavior_named(app, "Eating veggies").id, at=NOON)
    app.award_points(ann.id, behavior_named(app, "Meltdown").id, at=NOON - timedelta(days=1))

    report = app.child_report(ann.id, TimeBucket.DAY, now=NOON)
    assert report.child_id == ann.id
    assert report.total_points == 4
    assert report.by_category == [(BehaviorCategory.EATING, 4)]
    assert report.over_time == [(date(2024, 5, 15), 4)]
    assert report.progress.earned == -1

    family = app.family_report(TimeBucket.LIFETIME, now=NOON)
    assert family.child_id is None
    assert family.total_points == -1
    assert family.progress.threshold == 100


def test_summary_lists_children(app: DojoPoints) -> None:
    assert app.summary() == "No children added yet."
    ann = app.add_child("Ann", "👧", goal_points=10, goal_reward="Ice cream")
    app.add_child("Ben", "👦")
    app.award_points(ann.id, behavior_named(app, "Eating veggies").id, at=NOON)

    summary = app.summary(TimeBucket.WEEK, now=NOON)

    assert "This Week" in summary
    assert "Ann: 4 points (4 / 10 towards Ice cream)" in summary
    assert "Ben: 0 points" in summary
    assert "Family total: 4 points" in summary


def test_reset_keeps_builtins_only(app: DojoPoints) -> None:
    ann = app.add_child("Ann", "👧")
    custom = app.add_behavior("Sweeping", BehaviorCategory.CHORES, "🧹", 2)
    app.award_points(ann.id, custom.id, at=NOON)

    app.reset_all_data()

    assert app.list_children(include_archived=True) == []
    assert app.ledger() == []
    assert len(app.list_behaviors()) == len(BUILTIN_BEHAVIORS)
    assert all(behavior.builtin for behavior in app.list_behaviors())


def test_generate_test_data(app: DojoPoints) -> None:
    created = app.generate_test_data(days_back=7, seed=42, now=NOON)

    assert 14 <= created <= 56
    assert [child.name for child in app.list_children()] == ["Emma", "Noah"]
    entries = app.ledger()
    assert len(entries) == created
    first_morning = datetime(2024, 5, 9, 7, tzinfo=UTC)
    last_evening = datetime(2024, 5, 15, 22, tzinfo=UTC)
    assert all(first_morning <= entry.timestamp < last_evening for entry in entries)
    assert app.total_points(TimeBucket.LIFETIME) == sum(entry.points for entry in entries)


def test_backdated_award_is_undoable_right_away(app: DojoPoints) -> None:
    ann = app.add_child("Ann", "👧")
    an_hour_ago = NOON - timedelta(hours=1)
    result = app.award_points(ann.id, behavior_named(app, "Making bed").id, at=an_hour_ago, now=NOON)

    assert result.event.timestamp == an_hour_ago
    assert app.pending_undo(at=NOON + timedelta(seconds=1)) == result.event.id
    assert app.undo_last_award(at=NOON + timedelta(seconds=1)) == result.event.id
    assert app.ledger() == []


def test_undo_last_award_reports_vanished_event(app: DojoPoints) -> None:
    ann = app.add_child("Ann", "👧")
    result = app.award_points(ann.id, behavior_named(app, "Making bed").id, now=NOON)
    with app.store.atomic():
        app.store.delete(app.store.get(PointEvent, result.event.id))

    with pytest.raises(LookupError):
        app.undo_last_award(at=NOON + timedelta(seconds=1))
    assert app.pending_undo(at=NOON + timedelta(seconds=1)) is None


def test_storage_errors_reach_the_service_log(app: DojoPoints, db_url: str) -> None:
    ann = app.add_child("Ann", "👧")

    with DataStore(db_url) as other:
        household = DojoPoints(other, tz=UTC, seed=False)
        other.insert(Child(id=ann.id, name="Imposter", avatar="👻"))
        with pytest.raises(StorageError):
            other.save()

    [entry] = household.logger.entries("storage_error")
    assert entry["operation"] == "save"
    assert household.logger is other.logger


def test_bucket_interval_uses_household_settings(app: DojoPoints) -> None:
    interval = app.bucket_interval(TimeBucket.WEEK, now=NOON)

    assert interval.start == datetime(2024, 5, 12, tzinfo=UTC)
    assert interval.end == datetime(2024, 5, 19, tzinfo=UTC)
    assert app.bucket_interval(TimeBucket.LIFETIME).is_unbounded
