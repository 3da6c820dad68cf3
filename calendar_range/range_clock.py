"""Calendar arithmetic for recurrence periods.

All operations are pure: timestamps are never mutated, every call returns a
new value. Instance ``k`` of a series is always computed from the anchor as
``advance(anchor, period, k)`` rather than by chaining the previous instance,
so month-end clamping cannot drift (Jan 31 -> Feb 29 -> Mar 31, not Mar 29).

Overflow policy for months and years is to clamp to the last valid day of the
target month, which is what ``dateutil.relativedelta`` does:

    Jan 31 + 1 month  -> Feb 28 (Feb 29 in leap years)
    Feb 29 + 1 year   -> Feb 28
    Feb 29 + 4 years  -> Feb 29

Arithmetic happens on wall-clock time in the timestamp's own zone, so a daily
10:00 series stays at 10:00 local time across DST transitions.
"""

import logging
from datetime import datetime, timedelta

from dateutil.relativedelta import relativedelta

from .range_models import RecurrenceType

logger = logging.getLogger(__name__)

_PERIOD_STEPS: dict[RecurrenceType, relativedelta] = {
    RecurrenceType.DAILY: relativedelta(days=1),
    RecurrenceType.WEEKLY: relativedelta(weeks=1),
    RecurrenceType.MONTHLY: relativedelta(months=1),
    RecurrenceType.YEARLY: relativedelta(years=1),
}

_FIXED_PERIODS: dict[RecurrenceType, timedelta] = {
    RecurrenceType.DAILY: timedelta(days=1),
    RecurrenceType.WEEKLY: timedelta(weeks=1),
}


class CalendarClock:
    """Stateless calendar arithmetic over recurrence periods."""

    def advance(self, ts: datetime, recurrence: RecurrenceType, n: int = 1) -> datetime:
        """Return ``ts`` moved forward by ``n`` recurrence periods.

        Args:
            ts: Starting timestamp
            recurrence: Period to advance by
            n: Number of periods (may be 0)

        Returns:
            New timestamp

        Raises:
            ValueError: If recurrence is NONE or n is negative
        """
        step = _PERIOD_STEPS.get(recurrence)
        if step is None:
            raise ValueError(f"Cannot advance by non-recurring period {recurrence!r}")
        if n < 0:
            raise ValueError(f"Period count must be non-negative, got {n}")
        if n == 0:
            return ts
        return ts + step * n

    def duration(self, start: datetime, end: datetime) -> timedelta:
        """Elapsed time from ``start`` to ``end``."""
        return end - start

    def compare(self, a: datetime, b: datetime) -> int:
        """Three-way comparison: -1 if a < b, 0 if equal, 1 if a > b."""
        return (a > b) - (a < b)

    def periods_between(
        self, anchor: datetime, target: datetime, recurrence: RecurrenceType
    ) -> int:
        """Estimate how many whole periods fit between ``anchor`` and ``target``.

        The estimate is exact for calendar-aligned inputs and off by at most one
        around DST shifts or month-end clamping; callers that need the exact
        index should correct it with single steps.

        Returns:
            Non-negative period count (0 when target precedes anchor)
        """
        if recurrence not in _PERIOD_STEPS:
            raise ValueError(f"Cannot count non-recurring periods {recurrence!r}")
        if target <= anchor:
            return 0

        # Work in the anchor's wall-clock time, matching advance()
        local_target = target.astimezone(anchor.tzinfo) if anchor.tzinfo else target
        naive_anchor = anchor.replace(tzinfo=None)
        naive_target = local_target.replace(tzinfo=None)

        fixed = _FIXED_PERIODS.get(recurrence)
        if fixed is not None:
            return max((naive_target - naive_anchor) // fixed, 0)

        months = (naive_target.year - naive_anchor.year) * 12 + (
            naive_target.month - naive_anchor.month
        )
        count = months if recurrence == RecurrenceType.MONTHLY else months // 12
        if count > 0 and self.advance(anchor, recurrence, count) > target:
            count -= 1
        return max(count, 0)
