"""Persistence and SQLModel definitions for DojoPoints."""
from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator, List, Optional, Sequence, Type, TypeVar
from uuid import uuid4

from sqlalchemy import CheckConstraint, Column, DateTime, Enum as SAEnum, delete, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.types import TypeDecorator
from sqlmodel import Field, Session, SQLModel, create_engine, select

from . import config
from .buckets import as_utc, utcnow
from .exceptions import StorageError, ValidationError
from .models import BehaviorCategory, LedgerEntry
from .ops import StructuredLogger

FAMILY_GOAL_ID = 1

ModelT = TypeVar("ModelT", bound=SQLModel)


def _new_id() -> str:
    return str(uuid4())


class UTCTimestamp(TypeDecorator):
    """Timezone-aware UTC datetimes on every backend.

    SQLite keeps no offset, so values are written as UTC wall time and
    tagged as UTC again when loaded. Naive inputs are taken as UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect: Any) -> Optional[datetime]:
        if value is None:
            return None
        moment = as_utc(value)
        return moment.replace(tzinfo=None) if dialect.name == "sqlite" else moment

    def process_result_value(self, value: Optional[datetime], dialect: Any) -> Optional[datetime]:
        if value is None:
            return None
        return as_utc(value)


# ---------------------------------------------------------------------------
# Database models
# ---------------------------------------------------------------------------
class Child(SQLModel, table=True):
    id: str = Field(default_factory=_new_id, primary_key=True)
    name: str
    avatar: str
    archived: bool = False
    goal_points: int = 0
    goal_reward: str = ""
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCTimestamp)


class Behavior(SQLModel, table=True):
    id: str = Field(default_factory=_new_id, primary_key=True)
    name: str
    category: BehaviorCategory = Field(
        sa_column=Column(
            SAEnum(
                BehaviorCategory,
                values_callable=lambda members: [member.value for member in members],
                native_enum=False,
                length=16,
            ),
            nullable=False,
        )
    )
    glyph: str
    points: int
    builtin: bool = False


class PointEvent(SQLModel, table=True):
    """Append-only ledger row; ``points`` is copied from the behavior when awarded."""

    id: str = Field(default_factory=_new_id, primary_key=True)
    child_id: Optional[str] = Field(default=None, foreign_key="child.id", index=True)
    behavior_id: Optional[str] = Field(default=None, foreign_key="behavior.id", index=True)
    points: int
    timestamp: datetime = Field(default_factory=utcnow, sa_type=UTCTimestamp, index=True)


class FamilyGoal(SQLModel, table=True):
    """The household's shared goal. Exactly one row, keyed by ``FAMILY_GOAL_ID``."""

    __table_args__ = (CheckConstraint(f"id = {FAMILY_GOAL_ID}", name="familygoal_singleton"),)

    id: int = Field(default=FAMILY_GOAL_ID, primary_key=True)
    goal_points: int = 0
    goal_reward: str = ""


# ---------------------------------------------------------------------------
# Data store
# ---------------------------------------------------------------------------
def create_db_engine(url: Optional[str] = None) -> Engine:
    url = url or config.DATABASE_URL
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    engine = create_engine(url, echo=False, connect_args=connect_args)
    SQLModel.metadata.create_all(engine)
    return engine


class DataStore:
    """Unit-of-work wrapper around a SQLModel session.

    ``insert`` and ``delete`` stage changes; nothing is written until
    :meth:`save`, which commits them together or rolls all of them back and
    raises :class:`StorageError`.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        *,
        engine: Optional[Engine] = None,
        logger: Optional[StructuredLogger] = None,
    ) -> None:
        self.engine = engine or create_db_engine(url)
        if engine is not None:
            SQLModel.metadata.create_all(engine)
        self._session = Session(self.engine, expire_on_commit=False)
        self.logger = logger or StructuredLogger(path=config.LOG_PATH)

    def __enter__(self) -> "DataStore":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._session.close()

    # ------------------------------------------------------------------
    # Generic record access
    # ------------------------------------------------------------------
    def insert(self, entity: ModelT) -> ModelT:
        if isinstance(entity, FamilyGoal) and entity.id != FAMILY_GOAL_ID:
            raise ValidationError("Only one family goal may exist.")
        self._session.add(entity)
        return entity

    def delete(self, entity: SQLModel) -> None:
        self._session.delete(entity)

    def get(self, model: Type[ModelT], ident: Any) -> Optional[ModelT]:
        try:
            return self._session.get(model, ident)
        except SQLAlchemyError as exc:
            raise self._storage_error("get", exc) from exc

    def query(
        self,
        model: Type[ModelT],
        predicate: Any = None,
        sort: Any = None,
    ) -> List[ModelT]:
        """Return ``model`` rows matching ``predicate`` ordered by ``sort``.

        ``sort`` is a column expression or a sequence of them.
        """

        statement = select(model)
        if predicate is not None:
            statement = statement.where(predicate)
        if sort is not None:
            clauses: Sequence[Any] = sort if isinstance(sort, (list, tuple)) else (sort,)
            statement = statement.order_by(*clauses)
        try:
            return list(self._session.exec(statement).all())
        except SQLAlchemyError as exc:
            raise self._storage_error("query", exc) from exc

    def delete_where(self, model: Type[SQLModel], predicate: Any) -> None:
        try:
            self._session.exec(delete(model).where(predicate))
        except SQLAlchemyError as exc:
            raise self._storage_error("delete_where", exc) from exc

    def save(self) -> None:
        try:
            self._session.commit()
        except SQLAlchemyError as exc:
            raise self._storage_error("save", exc) from exc

    def rollback(self) -> None:
        self._session.rollback()

    @contextmanager
    def atomic(self) -> Iterator["DataStore"]:
        """Stage changes inside the block and commit them as one unit."""

        try:
            yield self
        except BaseException:
            self.rollback()
            raise
        self.save()

    # ------------------------------------------------------------------
    # Domain specific access
    # ------------------------------------------------------------------
    def family_goal(self) -> FamilyGoal:
        """Return the family goal, creating the default one on first use."""

        goal = self.get(FamilyGoal, FAMILY_GOAL_ID)
        if goal is None:
            goal = FamilyGoal(
                id=FAMILY_GOAL_ID,
                goal_points=config.DEFAULT_FAMILY_GOAL_POINTS,
                goal_reward=config.DEFAULT_FAMILY_GOAL_REWARD,
            )
            with self.atomic():
                self.insert(goal)
        return goal

    def orphan_events_of_behavior(self, behavior_id: str) -> None:
        """Detach historical events from a behavior that is about to be deleted."""

        try:
            self._session.exec(
                update(PointEvent).where(PointEvent.behavior_id == behavior_id).values(behavior_id=None)
            )
        except SQLAlchemyError as exc:
            raise self._storage_error("orphan_events", exc) from exc

    def ledger(self, predicate: Any = None) -> List[LedgerEntry]:
        """Snapshot point events, joined with their behavior's category.

        References to rows that no longer exist come back as ``None``.
        """

        statement = (
            select(PointEvent, Child.id, Behavior.id, Behavior.category)
            .outerjoin(Child, PointEvent.child_id == Child.id)
            .outerjoin(Behavior, PointEvent.behavior_id == Behavior.id)
            .order_by(PointEvent.timestamp)
        )
        if predicate is not None:
            statement = statement.where(predicate)
        try:
            rows = self._session.exec(statement).all()
        except SQLAlchemyError as exc:
            raise self._storage_error("ledger", exc) from exc
        return [
            LedgerEntry(
                event_id=event.id,
                points=event.points,
                timestamp=as_utc(event.timestamp),
                child_id=child_id,
                behavior_id=behavior_id,
                category=category,
            )
            for event, child_id, behavior_id, category in rows
        ]

    def _storage_error(self, operation: str, exc: SQLAlchemyError) -> StorageError:
        self._session.rollback()
        self.logger.log("storage_error", operation=operation, error=str(exc))
        return StorageError(f"Data store {operation} failed: {exc}")


__all__ = [
    "FAMILY_GOAL_ID",
    "Behavior",
    "Child",
    "DataStore",
    "FamilyGoal",
    "PointEvent",
    "UTCTimestamp",
    "create_db_engine",
]
