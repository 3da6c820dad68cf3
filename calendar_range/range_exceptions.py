"""Custom exception hierarchy for the calendar range engine.

The engine itself only raises for genuine invariant violations; data that
merely yields no occurrences (empty windows, unknown recurrence tags) is never
an error. The HTTP boundary adds window and lookup failures on top.
"""


class RangeEngineError(Exception):
    """Base exception for all calendar range errors.

    All custom exceptions raised by calendar_range inherit from this base class
    so callers can handle engine failures in one place.
    """


class InvariantViolation(RangeEngineError, ValueError):
    """A base event record violates its own invariants.

    Raised when:
    - endDate is earlier than startDate
    - recurrenceEndDate is earlier than startDate
    - required fields (id, startDate, endDate) are missing or unparseable

    Fatal to the operation that attempted to create or update the event; a bad
    record in the seed file stops the server from starting.
    """

    def __init__(self, message: str, event_id: str | None = None):
        super().__init__(message)
        self.event_id = event_id


class WindowValidationError(RangeEngineError, ValueError):
    """Query window parameters are invalid.

    Raised when:
    - startDate or endDate cannot be parsed as ISO-8601
    - only one of startDate / endDate is supplied
    - the window is longer than the configured maximum

    An inverted window (end before start) is NOT an error; it yields no
    occurrences. Should result in HTTP 400 Bad Request response.
    """


class EventNotFoundError(RangeEngineError, LookupError):
    """A base event was not found for the requesting principal.

    Should result in HTTP 404 Not Found response.
    """


class EventStoreError(RangeEngineError):
    """The in-memory event store could not be seeded.

    Raised when:
    - the seed file cannot be read
    - the seed file is not a JSON list of records
    """
