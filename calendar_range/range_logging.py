"""Logging setup for the calendar_range server process.

The root level comes from the resolved server config; engine modules run at
DEBUG only when debug logging is on, and chatty aiohttp/asyncio loggers are
held back regardless.
"""

import logging
import os
from typing import Optional

RANGE_MODULES = [
    "calendar_range",
    "calendar_range.range_expander",
    "calendar_range.range_merger",
    "calendar_range.range_query",
    "calendar_range.event_store",
    "calendar_range.api",
]

_THIRD_PARTY_LEVELS = {
    "aiohttp.access": logging.WARNING,
    "aiohttp.server": logging.WARNING,
    "aiohttp.web": logging.INFO,
    "aiohttp.web_log": logging.WARNING,
    "asyncio": logging.WARNING,
}

_LEVEL_NAMES = ("DEBUG", "INFO", "WARNING", "ERROR")

_DEFAULT_FORMAT = "[%(asctime)s] [%(request_id)s] %(levelname)s - %(name)s - %(message)s"


class CorrelationIdFilter(logging.Filter):
    """Stamp each record with the request id of the handler that emitted it."""

    def filter(self, record: logging.LogRecord) -> bool:
        from .middleware import get_request_id

        record.request_id = get_request_id()
        return True


def _debug_requested(debug_mode: bool, force_debug: Optional[bool]) -> bool:
    if force_debug is not None:
        return force_debug
    if os.getenv("CALENDAR_RANGE_DEBUG", "").lower() in ("1", "true", "yes"):
        return True
    return debug_mode


def _resolve_root_level(log_level: Optional[str], debug: bool) -> int:
    """Pick the root level: explicit argument, then environment, then debug flag.

    Unknown level names are skipped rather than rejected.
    """
    for candidate in (log_level, os.getenv("CALENDAR_RANGE_LOG_LEVEL")):
        name = (candidate or "").strip().upper()
        if name in _LEVEL_NAMES:
            return getattr(logging, name)
    return logging.DEBUG if debug else logging.INFO


def _attach_correlation_filter(root_logger: logging.Logger) -> None:
    if not root_logger.handlers:
        # Only reached when _init_logging was skipped (e.g. start_server called directly)
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_DEFAULT_FORMAT))
        handler.addFilter(CorrelationIdFilter())
        root_logger.addHandler(handler)
        return

    for handler in root_logger.handlers:
        if not any(isinstance(f, CorrelationIdFilter) for f in handler.filters):
            handler.addFilter(CorrelationIdFilter())


def configure_range_logging(
    debug_mode: bool = False,
    force_debug: Optional[bool] = None,
    log_level: Optional[str] = None,
) -> None:
    """Apply process-wide logging levels for the server.

    Args:
        debug_mode: Run calendar_range loggers at DEBUG
        force_debug: Overrides both debug_mode and CALENDAR_RANGE_DEBUG when not None
        log_level: Root level name (DEBUG, INFO, WARNING, ERROR); takes precedence
            over CALENDAR_RANGE_LOG_LEVEL
    """
    debug = _debug_requested(debug_mode, force_debug)
    root_level = _resolve_root_level(log_level, debug)

    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)
    _attach_correlation_filter(root_logger)

    for name, level in _THIRD_PARTY_LEVELS.items():
        logging.getLogger(name).setLevel(level)

    # Records propagate past the root level check, so a stricter root level
    # must be applied to the module loggers too.
    module_level = logging.DEBUG if debug else max(logging.INFO, root_level)
    for name in RANGE_MODULES:
        logging.getLogger(name).setLevel(module_level)

    root_logger.info(
        "Logging configured: root=%s, calendar_range=%s",
        logging.getLevelName(root_level),
        logging.getLevelName(module_level),
    )
