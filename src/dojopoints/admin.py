"""Undo support for the most recent point award."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from .buckets import as_utc


class UndoManager:
    """Keep the latest action undoable for a short window.

    Registering a new action replaces the previous one, which then becomes
    permanent as far as this manager is concerned.
    """

    def __init__(self, *, window_seconds: int = 15) -> None:
        self._window = timedelta(seconds=window_seconds)
        self._last_event: tuple[str, datetime, Callable[[], object]] | None = None

    @property
    def window(self) -> timedelta:
        return self._window

    def register(
        self,
        key: str,
        undo_callable: Callable[[], object],
        *,
        timestamp: Optional[datetime] = None,
    ) -> str:
        self._last_event = (key, as_utc(timestamp or datetime.now(timezone.utc)), undo_callable)
        return key

    def pending(self, *, at: Optional[datetime] = None) -> Optional[str]:
        """Return the key of the action that can still be undone at ``at``."""

        if not self._last_event:
            return None
        key, event_time, _ = self._last_event
        if self._expired(event_time, at):
            return None
        return key

    def undo(self, *, at: Optional[datetime] = None) -> str:
        """Run the pending undo callable and return its key.

        A callable returning ``False`` means there was nothing left to undo,
        which is reported as :class:`LookupError`.
        """

        if not self._last_event:
            raise LookupError("No undoable action is available.")
        key, event_time, undo_callable = self._last_event
        if self._expired(event_time, at):
            self._last_event = None
            raise TimeoutError("Undo window has expired.")
        undone = undo_callable()
        self._last_event = None
        if undone is False:
            raise LookupError(f"Action '{key}' no longer exists.")
        return key

    def discard(self, key: Optional[str] = None) -> None:
        """Forget the pending action, or only the one registered under ``key``."""

        if self._last_event and (key is None or self._last_event[0] == key):
            self._last_event = None

    def _expired(self, event_time: datetime, at: Optional[datetime]) -> bool:
        moment = as_utc(at or datetime.now(timezone.utc))
        return moment - event_time > self._window


__all__ = ["UndoManager"]
