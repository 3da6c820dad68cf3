"""Range query façade used by the rest of the application."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any, Union

from .range_merger import OccurrenceMerger
from .range_models import BaseEvent, Occurrence, QueryWindow

logger = logging.getLogger(__name__)

EventInput = Union[BaseEvent, Mapping[str, Any]]


class RangeQueryService:
    """Answers "which occurrences fall inside [start, end]?".

    Owns no state; every call works on the snapshot of events it is given, so a
    single instance can serve concurrent requests.
    """

    def __init__(self, merger: OccurrenceMerger | None = None):
        self.merger = merger or OccurrenceMerger()

    def query(
        self,
        events: Iterable[EventInput],
        window_start: datetime,
        window_end: datetime,
    ) -> list[Occurrence]:
        """Return every occurrence of ``events`` overlapping the window.

        Args:
            events: Base events or raw records in the persisted layout
            window_start: Inclusive window start
            window_end: Inclusive window end; earlier than start means empty

        Returns:
            Occurrences sorted by start time

        Raises:
            InvariantViolation: If a raw record breaks a BaseEvent invariant
        """
        return self.query_window(events, QueryWindow(start=window_start, end=window_end))

    def query_window(self, events: Iterable[EventInput], window: QueryWindow) -> list[Occurrence]:
        """Same as ``query`` with a prebuilt window."""
        if window.is_empty:
            return []
        base_events = self.coerce_events(events)
        occurrences = self.merger.merge(base_events, window)
        logger.debug(
            "Range query %s..%s over %d events returned %d occurrences",
            window.start.isoformat(),
            window.end.isoformat(),
            len(base_events),
            len(occurrences),
        )
        return occurrences

    def list_anchors(self, events: Iterable[EventInput]) -> list[Occurrence]:
        """Return every stored event as its anchor occurrence, without expansion.

        Used when a caller asks for events without a window.
        """
        base_events = self.coerce_events(events)
        anchors = [Occurrence.for_anchor(event) for event in base_events]
        return self.merger.sort_occurrences(self.merger.deduplicate_occurrences(anchors))

    @staticmethod
    def coerce_events(events: Iterable[EventInput]) -> list[BaseEvent]:
        """Convert raw records to BaseEvents, passing BaseEvents through."""
        return [
            event if isinstance(event, BaseEvent) else BaseEvent.from_record(event)
            for event in events
        ]
