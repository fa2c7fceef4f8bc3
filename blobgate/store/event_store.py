"""
Event store adapters.

The policy layer only needs `query`, `save` and `delete`. Two backends are
provided: an append-only JSON Lines file (one event per line) and an
in-memory store for tests and embedding.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Iterator, Protocol, runtime_checkable

from ..errors import StoreQueryFailure
from ..events import Event, Filter

logger = logging.getLogger(__name__)


@runtime_checkable
class EventStore(Protocol):
    """Query contract the policy layer depends on."""

    def query(self, filter: Filter) -> Iterator[Event]:
        """
        Iterate over stored events matching `filter`, newest first.

        Raises:
            StoreQueryFailure: If the store cannot be read
        """
        ...

    def save(self, event: Event) -> None:
        """Persist an event. Saving an event id that already exists is a no-op."""
        ...

    def delete(self, event: Event) -> bool:
        """Remove an event by id. Returns False if it was not stored."""
        ...


def _apply_limit(events: list[Event], filter: Filter) -> Iterator[Event]:
    events.sort(key=lambda e: (-e.created_at, e.id))
    if filter.limit is not None:
        events = events[: max(filter.limit, 0)]
    yield from events


class MemoryEventStore:
    """Event store held in a dict keyed by event id."""

    def __init__(self, events: list[Event] | None = None):
        self._events: dict[str, Event] = {}
        self._lock = threading.Lock()
        for event in events or []:
            self.save(event)

    def query(self, filter: Filter) -> Iterator[Event]:
        with self._lock:
            matched = [e for e in self._events.values() if filter.matches(e)]
        return _apply_limit(matched, filter)

    def save(self, event: Event) -> None:
        with self._lock:
            self._events.setdefault(event.id, event)

    def delete(self, event: Event) -> bool:
        with self._lock:
            return self._events.pop(event.id, None) is not None

    def count(self) -> int:
        return len(self._events)


class JsonlEventStore:
    """
    Event store backed by a JSON Lines file.

    Storage format: one NIP-01 event object per line. Saves append;
    deletes rewrite the file through a temp file and rename.
    """

    def __init__(self, path: Path):
        self.path = path
        self._lock = threading.Lock()

    def _ensure_dir(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def iter_events(self) -> Iterator[Event]:
        """Iterate over every stored event in file order."""
        if not self.path.exists():
            return
        with self.path.open("rb") as f:
            for lineno, raw in enumerate(f, start=1):
                if not raw.strip():
                    continue
                try:
                    yield Event.from_json(raw.decode("utf-8"))
                except (ValueError, KeyError, TypeError) as e:
                    logger.warning("skipping malformed event at %s:%d: %s", self.path, lineno, e)

    def query(self, filter: Filter) -> Iterator[Event]:
        try:
            with self._lock:
                matched = [e for e in self.iter_events() if filter.matches(e)]
        except OSError as e:
            raise StoreQueryFailure(str(e)) from e
        return _apply_limit(matched, filter)

    def _contains(self, event_id: str) -> bool:
        return any(e.id == event_id for e in self.iter_events())

    def save(self, event: Event) -> None:
        with self._lock:
            if self._contains(event.id):
                return
            self._ensure_dir()
            with self.path.open("a", encoding="utf-8") as f:
                f.write(event.to_json() + "\n")

    def delete(self, event: Event) -> bool:
        with self._lock:
            events = list(self.iter_events())
            kept = [e for e in events if e.id != event.id]
            if len(kept) == len(events):
                return False
            temp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            with temp_path.open("w", encoding="utf-8") as f:
                for e in kept:
                    f.write(e.to_json() + "\n")
            temp_path.replace(self.path)
            return True

    def count(self) -> int:
        return sum(1 for _ in self.iter_events())
