"""Shared pytest fixtures for calendar_range tests."""

import logging
from collections.abc import Callable, Generator
from datetime import UTC, datetime, timedelta
from typing import Any, Optional

import pytest

from calendar_range.range_models import BaseEvent, QueryWindow

CONFIG_ENV_KEYS = [
    "CALENDAR_RANGE_EVENTS_FILE",
    "CALENDAR_RANGE_SERVER_BIND",
    "CALENDAR_RANGE_SERVER_PORT",
    "CALENDAR_RANGE_LOG_LEVEL",
    "CALENDAR_RANGE_DEBUG",
    "CALENDAR_RANGE_DEFAULT_TIMEZONE",
    "CALENDAR_RANGE_MAX_WINDOW_DAYS",
]


def pytest_configure(config: Any) -> None:
    """Register test markers."""
    config.addinivalue_line("markers", "unit: Fast unit tests")
    config.addinivalue_line("markers", "integration: HTTP tests against an in-process server")


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Clear CALENDAR_RANGE_* variables so host settings never leak into tests."""
    for key in CONFIG_ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def restore_logging() -> Generator[None, Any, None]:
    """Restore logger levels and drop correlation filters after each test.

    configure_range_logging and _init_logging mutate process-wide logging state.
    """
    from calendar_range.range_logging import RANGE_MODULES, CorrelationIdFilter

    touched = ["", *RANGE_MODULES, "aiohttp.access", "aiohttp.server", "aiohttp.web", "aiohttp.web_log", "asyncio"]
    saved_levels = {name: logging.getLogger(name).level for name in touched}
    yield
    for handler in logging.getLogger().handlers:
        for log_filter in list(handler.filters):
            if isinstance(log_filter, CorrelationIdFilter):
                handler.removeFilter(log_filter)
    for name, level in saved_levels.items():
        logging.getLogger(name).setLevel(level)


@pytest.fixture
def make_event() -> Callable[..., BaseEvent]:
    """Factory building BaseEvents from the persisted camelCase layout.

    Usage:
        make_event("e1", start, duration=timedelta(hours=1), recurrence="daily")
    """

    def _make(
        event_id: str,
        start: datetime,
        duration: timedelta = timedelta(hours=1),
        recurrence: Optional[str] = None,
        recurrence_end: Optional[datetime] = None,
        **payload: Any,
    ) -> BaseEvent:
        record: dict[str, Any] = {
            "id": event_id,
            "startDate": start,
            "endDate": start + duration,
            "title": payload.pop("title", f"Event {event_id}"),
            **payload,
        }
        if recurrence is not None:
            record["recurrenceType"] = recurrence
        if recurrence_end is not None:
            record["recurrenceEndDate"] = recurrence_end
        return BaseEvent.from_record(record)

    return _make


@pytest.fixture
def daily_series(make_event: Callable[..., BaseEvent]) -> BaseEvent:
    """One-hour daily event from 2024-01-01 10:00 UTC until 2024-01-10 10:00 UTC."""
    return make_event(
        "daily-standup",
        datetime(2024, 1, 1, 10, 0, tzinfo=UTC),
        recurrence="daily",
        recurrence_end=datetime(2024, 1, 10, 10, 0, tzinfo=UTC),
        title="Standup",
    )


@pytest.fixture
def jan_window() -> QueryWindow:
    """Window covering 2024-01-03 00:00 through 2024-01-06 23:59 UTC."""
    return QueryWindow(
        start=datetime(2024, 1, 3, 0, 0, tzinfo=UTC),
        end=datetime(2024, 1, 6, 23, 59, tzinfo=UTC),
    )
