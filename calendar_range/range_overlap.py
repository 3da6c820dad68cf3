"""Coarse anchor-vs-window overlap filtering."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime

from .range_models import BaseEvent, QueryWindow

logger = logging.getLogger(__name__)


def interval_overlaps(start: datetime, end: datetime, window: QueryWindow) -> bool:
    """Check whether ``[start, end]`` intersects the window.

    True when the interval starts inside the window, ends inside the window, or
    spans the whole window. Both window bounds are inclusive.
    """
    if window.is_empty:
        return False
    starts_inside = window.start <= start <= window.end
    ends_inside = window.start <= end <= window.end
    spans_window = start <= window.start and end >= window.end
    return starts_inside or ends_inside or spans_window


class OverlapPredicate:
    """Decides whether a base event's anchor instance touches a window.

    For recurring events this is only a candidate filter: a series whose anchor
    lies outside the window may still have instances inside it, which the
    RecurrenceExpander decides.
    """

    def overlaps(self, event: BaseEvent, window: QueryWindow) -> bool:
        """Return True if the event's anchor instance overlaps the window."""
        return interval_overlaps(event.start_date, event.end_date, window)

    def filter_candidates(
        self, events: Iterable[BaseEvent], window: QueryWindow
    ) -> list[BaseEvent]:
        """Keep events whose anchor overlaps the window, preserving input order."""
        candidates = [event for event in events if self.overlaps(event, window)]
        logger.debug("Overlap filter kept %d anchor candidates", len(candidates))
        return candidates
