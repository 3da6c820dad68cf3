"""Calendar event routes for the calendar_range server."""

from __future__ import annotations

import logging
import zoneinfo
from collections.abc import Mapping
from datetime import timedelta, tzinfo
from typing import Any

from ...config_manager import Config
from ...event_store import InMemoryEventStore
from ...range_datetime_utils import parse_iso_datetime
from ...range_exceptions import EventNotFoundError, WindowValidationError
from ...range_models import QueryWindow
from ...range_query import RangeQueryService

logger = logging.getLogger(__name__)


def parse_query_window(
    params: Mapping[str, str],
    default_tz: tzinfo,
    max_length: timedelta,
) -> QueryWindow | None:
    """Build a QueryWindow from ``startDate`` / ``endDate`` query parameters.

    Args:
        params: Request query parameters
        default_tz: Zone applied to naive timestamps
        max_length: Longest accepted window

    Returns:
        QueryWindow, or None when neither bound was supplied

    Raises:
        WindowValidationError: If only one bound is given, a bound does not parse,
            or the window is longer than ``max_length``
    """
    raw_start = params.get("startDate")
    raw_end = params.get("endDate")

    if not raw_start and not raw_end:
        return None
    if not raw_start or not raw_end:
        raise WindowValidationError("startDate and endDate must be supplied together")

    try:
        start = parse_iso_datetime(raw_start, default_tz)
    except ValueError as e:
        raise WindowValidationError(f"Invalid startDate {raw_start!r}: {e}") from e
    try:
        end = parse_iso_datetime(raw_end, default_tz)
    except ValueError as e:
        raise WindowValidationError(f"Invalid endDate {raw_end!r}: {e}") from e

    window = QueryWindow(start=start, end=end)
    if not window.is_empty and window.length > max_length:
        raise WindowValidationError(
            f"Window of {window.length.days} days exceeds the {max_length.days} day limit"
        )
    return window


def register_event_routes(
    app: Any,
    config: Config,
    store: InMemoryEventStore,
    query_service: RangeQueryService,
) -> None:
    """Register calendar event routes.

    Args:
        app: aiohttp web application
        config: Server configuration
        store: Event store holding base events
        query_service: Range query façade
    """
    from aiohttp import web

    default_tz = zoneinfo.ZoneInfo(config.default_timezone)
    max_length = timedelta(days=config.max_window_days)

    def _error(status: int, message: str) -> Any:
        return web.json_response({"success": False, "error": message}, status=status)

    async def list_events(request: Any) -> Any:
        """Return the occurrences of the principal's events inside the window.

        An optional ``taskId`` narrows the events to those linked to that task.
        """
        user_id = request.query.get("userId")
        if not user_id:
            return _error(400, "userId parameter is required")
        task_id = request.query.get("taskId")

        try:
            window = parse_query_window(request.query, default_tz, max_length)
        except WindowValidationError as e:
            logger.info("Rejected window for user %s: %s", user_id, e)
            return _error(400, str(e))

        try:
            if task_id:
                events = store.events_for_task(user_id, task_id)
            else:
                events = store.events_for(user_id)
            if window is None:
                occurrences = query_service.list_anchors(events)
            else:
                occurrences = query_service.query_window(events, window)
        except Exception:
            logger.exception("Failed to resolve occurrences for user %s", user_id)
            return _error(500, "Failed to load calendar events")

        logger.debug(
            "/api/calendar/events user=%s returned %d occurrences", user_id, len(occurrences)
        )
        return web.json_response([o.to_api_dict() for o in occurrences])

    async def get_event(request: Any) -> Any:
        """Return a single base event record."""
        user_id = request.query.get("userId")
        if not user_id:
            return _error(400, "userId parameter is required")

        event_id = request.match_info["event_id"]
        try:
            event = store.get(user_id, event_id)
        except EventNotFoundError as e:
            return _error(404, str(e))

        return web.json_response(event.to_record())

    async def health(_request: Any) -> Any:
        """Liveness endpoint."""
        return web.json_response({"status": "ok", "event_count": len(store)})

    app.router.add_get("/api/calendar/events", list_events)
    app.router.add_get("/api/calendar/events/{event_id}", get_event)
    app.router.add_get("/api/health", health)
