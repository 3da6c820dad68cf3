"""Route modules for the calendar_range server."""

from .event_routes import parse_query_window, register_event_routes

__all__ = [
    "parse_query_window",
    "register_event_routes",
]
