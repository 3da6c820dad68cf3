"""In-memory base event store backing the HTTP boundary.

The engine never loads events itself; this store stands in for the external
event store and hands out immutable per-principal snapshots.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from .range_exceptions import EventNotFoundError, EventStoreError
from .range_models import BaseEvent

logger = logging.getLogger(__name__)


class InMemoryEventStore:
    """Thread-safe map of base events keyed by id."""

    def __init__(self, events: Iterable[BaseEvent | Mapping[str, Any]] = ()):
        self._lock = threading.Lock()
        self._events: dict[str, BaseEvent] = {}
        for event in events:
            self.put(event)

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def put(self, event: BaseEvent | Mapping[str, Any]) -> BaseEvent:
        """Insert or replace an event.

        Raises:
            InvariantViolation: If a raw record is malformed
        """
        base_event = event if isinstance(event, BaseEvent) else BaseEvent.from_record(event)
        with self._lock:
            self._events[base_event.id] = base_event
        return base_event

    def events_for(self, user_id: str) -> tuple[BaseEvent, ...]:
        """Snapshot of every event owned by ``user_id``."""
        with self._lock:
            return tuple(e for e in self._events.values() if e.user_id == user_id)

    def events_for_task(self, user_id: str, task_id: str) -> tuple[BaseEvent, ...]:
        """Snapshot of the events owned by ``user_id`` that are linked to ``task_id``.

        Another principal's events linked to the same task are never included.
        """
        with self._lock:
            return tuple(
                e for e in self._events.values() if e.user_id == user_id and e.task_id == task_id
            )

    def get(self, user_id: str, event_id: str) -> BaseEvent:
        """Fetch one event owned by ``user_id``.

        Raises:
            EventNotFoundError: If the event does not exist or belongs to someone else
        """
        with self._lock:
            event = self._events.get(event_id)
        if event is None or event.user_id != user_id:
            raise EventNotFoundError(f"Event {event_id!r} not found")
        return event

    @classmethod
    def from_json_file(cls, path: Path | str) -> InMemoryEventStore:
        """Seed a store from a JSON file holding a list of event records.

        Raises:
            EventStoreError: If the file cannot be read or is not a JSON list
            InvariantViolation: If any record is malformed
        """
        seed_path = Path(path)
        try:
            records = json.loads(seed_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise EventStoreError(f"Failed to read event seed file {seed_path}: {e}") from e

        if not isinstance(records, list):
            raise EventStoreError(
                f"Event seed file {seed_path} must contain a JSON list, got {type(records).__name__}"
            )
        if not all(isinstance(record, dict) for record in records):
            raise EventStoreError(f"Event seed file {seed_path} must contain only JSON objects")

        store = cls(records)
        logger.info("Loaded %d base events from %s", len(store), seed_path)
        return store
