"""Occurrence merging and deduplication for the calendar range engine.

Combines the anchor instances that pass the overlap predicate with the
virtual instances produced by recurrence expansion, removes duplicates and
returns a deterministically ordered list.
"""

import logging
from collections.abc import Iterable
from typing import Optional

from .range_expander import RecurrenceExpander
from .range_models import BaseEvent, Occurrence, QueryWindow
from .range_overlap import OverlapPredicate

logger = logging.getLogger(__name__)


class OccurrenceMerger:
    """Merges anchor and virtual occurrences for a window."""

    def __init__(
        self,
        overlap: Optional[OverlapPredicate] = None,
        expander: Optional[RecurrenceExpander] = None,
    ):
        self.overlap = overlap or OverlapPredicate()
        self.expander = expander or RecurrenceExpander()

    def merge(self, base_events: Iterable[BaseEvent], window: QueryWindow) -> list[Occurrence]:
        """Resolve every occurrence of ``base_events`` that overlaps ``window``.

        This method:
        1. Emits the anchor of each event whose anchor overlaps the window
        2. Expands every recurring event, whether or not its anchor overlapped
        3. Deduplicates by occurrence id and sorts by start time

        Invariant violations are not re-checked here; bad input propagates.

        Args:
            base_events: Validated base events
            window: Inclusive query window

        Returns:
            Occurrences sorted by (start, source event id, occurrence id)
        """
        events = list(base_events)
        if window.is_empty:
            logger.debug("Empty window %s..%s; no occurrences", window.start, window.end)
            return []

        anchors = self._collect_anchors(events, window)
        expanded = self._collect_expanded(events, window)

        merged = self.deduplicate_occurrences(anchors + expanded)
        logger.debug(
            "Merged %d anchors + %d virtual = %d occurrences from %d base events",
            len(anchors),
            len(expanded),
            len(merged),
            len(events),
        )
        return self.sort_occurrences(merged)

    def _collect_anchors(
        self, events: list[BaseEvent], window: QueryWindow
    ) -> list[Occurrence]:
        candidates = self.overlap.filter_candidates(events, window)
        return [Occurrence.for_anchor(event) for event in candidates]

    def _collect_expanded(
        self, events: list[BaseEvent], window: QueryWindow
    ) -> list[Occurrence]:
        expanded: list[Occurrence] = []
        for event in events:
            if event.is_recurring:
                expanded.extend(self.expander.expand(event, window))
        return expanded

    def deduplicate_occurrences(self, occurrences: list[Occurrence]) -> list[Occurrence]:
        """Remove occurrences whose id was already seen, keeping the first.

        Duplicates appear when the same base event is supplied more than once.
        """
        seen: set[str] = set()
        deduplicated = []

        for occurrence in occurrences:
            if occurrence.occurrence_id in seen:
                continue
            seen.add(occurrence.occurrence_id)
            deduplicated.append(occurrence)

        if len(occurrences) != len(deduplicated):
            logger.debug("Removed %d duplicate occurrences", len(occurrences) - len(deduplicated))

        return deduplicated

    def sort_occurrences(self, occurrences: list[Occurrence]) -> list[Occurrence]:
        """Sort by start time; ties broken by source event id, then occurrence id."""
        return sorted(
            occurrences,
            key=lambda o: (o.start_date, o.source_event_id, o.occurrence_id),
        )
