"""Operational utilities for DojoPoints."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional


class StructuredLogger:
    """Record service activity as JSON-lines entries.

    Entries are always kept in memory for inspection; when ``path`` is set
    each entry is also appended to that file.
    """

    def __init__(self, *, path: Path | None = None) -> None:
        self.path = path
        self._entries: list[dict] = []

    def log(self, event_type: str, **fields: object) -> dict:
        entry = {"timestamp": datetime.now(timezone.utc).isoformat(), "event": event_type, **fields}
        self._entries.append(entry)
        if self.path:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(json.dumps(entry, ensure_ascii=False, default=str) + "\n")
        return entry

    def tail(self, limit: int = 50) -> tuple[dict, ...]:
        return tuple(self._entries[-limit:])

    def entries(self, event_type: Optional[str] = None) -> tuple[dict, ...]:
        if event_type is None:
            return tuple(self._entries)
        return tuple(entry for entry in self._entries if entry["event"] == event_type)


__all__ = ["StructuredLogger"]
