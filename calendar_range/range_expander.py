"""Recurrence expansion for the calendar range engine.

Expands one recurring base event into the virtual instances that fall inside
a query window. The anchor itself is never re-emitted here; it is handled by
the merger through the overlap predicate.
"""

import logging
from collections.abc import Iterator
from datetime import datetime
from typing import Optional

from .range_clock import CalendarClock
from .range_datetime_utils import format_instance_stamp
from .range_models import BaseEvent, Occurrence, QueryWindow

logger = logging.getLogger(__name__)

OCCURRENCE_ID_DELIMITER = "::"


def derive_occurrence_id(source_event_id: str, instance_start: datetime) -> str:
    """Derive the identifier of a virtual instance.

    The id is ``"<source_event_id>::<UTC start as YYYYMMDDTHHMMSSZ>"``. It depends
    only on the source id and the instance's start instant, so the same logical
    instance gets a byte-identical id from every query that returns it, whatever
    the window or the zone the timestamps were supplied in.

    Args:
        source_event_id: Id of the owning BaseEvent
        instance_start: Start of the virtual instance

    Returns:
        Occurrence identifier
    """
    return f"{source_event_id}{OCCURRENCE_ID_DELIMITER}{format_instance_stamp(instance_start)}"


def extract_source_event_id(occurrence_id: str) -> str:
    """Return the owning BaseEvent id of an occurrence id.

    Anchor occurrence ids are the source id itself and are returned unchanged.
    """
    if OCCURRENCE_ID_DELIMITER in occurrence_id:
        return occurrence_id.rsplit(OCCURRENCE_ID_DELIMITER, 1)[0]
    return occurrence_id


class RecurrenceExpander:
    """Produces the virtual instances of a recurring event inside a window.

    Instance ``k`` (k >= 1) starts at ``clock.advance(anchor, recurrence, k)``.
    Instances are emitted while they start no later than the series bound, the
    earlier of the rule's end date and the window end, and only once they start
    at or after the window start.
    """

    def __init__(self, clock: Optional[CalendarClock] = None):
        self.clock = clock or CalendarClock()

    def expand(self, event: BaseEvent, window: QueryWindow) -> Iterator[Occurrence]:
        """Lazily expand ``event`` into virtual occurrences within ``window``.

        Instances before the window are not walked one by one: the index of the
        first instance at or after the window start is computed directly, which
        yields exactly what a period-by-period walk from the anchor would.

        Args:
            event: Base event; non-recurring events produce nothing
            window: Inclusive query window

        Yields:
            Virtual occurrences in ascending start order
        """
        series_bound = self._series_bound(event, window)
        if series_bound is None:
            return

        first_index = self._first_index_at_or_after(event, window.start)
        yield from self._walk(event, window, series_bound, first_index)

    def expand_naive(self, event: BaseEvent, window: QueryWindow) -> Iterator[Occurrence]:
        """Expand by stepping one period at a time from the anchor.

        Reference behaviour for ``expand``; cost grows with the number of periods
        between the anchor and the window start.
        """
        series_bound = self._series_bound(event, window)
        if series_bound is None:
            return
        yield from self._walk(event, window, series_bound, 1)

    def expand_to_list(self, event: BaseEvent, window: QueryWindow) -> list[Occurrence]:
        """Expand and materialize the occurrences as a list."""
        occurrences = list(self.expand(event, window))
        logger.debug(
            "Expanded event %s (%s) into %d virtual occurrences",
            event.id,
            event.recurrence.value,
            len(occurrences),
        )
        return occurrences

    def _series_bound(self, event: BaseEvent, window: QueryWindow) -> Optional[datetime]:
        """Return the last admissible instance start, or None if nothing can match."""
        if not event.is_recurring or window.is_empty:
            return None

        rule_end = event.recurrence_end_date
        if rule_end is not None and rule_end < window.start:
            logger.debug(
                "Series %s ended at %s before window start %s; skipping",
                event.id,
                rule_end.isoformat(),
                window.start.isoformat(),
            )
            return None

        if rule_end is None:
            return window.end
        return min(rule_end, window.end)

    def _first_index_at_or_after(self, event: BaseEvent, target: datetime) -> int:
        """Index of the first instance (>= 1) starting at or after ``target``."""
        anchor = event.start_date
        recurrence = event.recurrence

        index = max(self.clock.periods_between(anchor, target, recurrence), 1)
        while index > 1 and self.clock.advance(anchor, recurrence, index - 1) >= target:
            index -= 1
        while self.clock.advance(anchor, recurrence, index) < target:
            index += 1
        return index

    def _walk(
        self,
        event: BaseEvent,
        window: QueryWindow,
        series_bound: datetime,
        first_index: int,
    ) -> Iterator[Occurrence]:
        anchor = event.start_date
        duration = event.duration
        payload = event.payload()

        index = first_index
        instance_start = self.clock.advance(anchor, event.recurrence, index)
        while instance_start <= series_bound:
            if instance_start >= window.start:
                yield Occurrence(
                    source_event_id=event.id,
                    occurrence_id=derive_occurrence_id(event.id, instance_start),
                    start_date=instance_start,
                    end_date=instance_start + duration,
                    is_virtual=True,
                    payload=payload,
                )
            index += 1
            instance_start = self.clock.advance(anchor, event.recurrence, index)
