"""calendar_range - recurrence expansion and range-overlap resolution.

Answers "which event occurrences fall inside [start, end]?" for a set of base
events, some of which carry a daily/weekly/monthly/yearly recurrence rule.
The engine modules are pure; the HTTP server under ``calendar_range.api`` is
only needed for ``python -m calendar_range``.
"""

__version__ = "0.1.0"

from typing import Optional

from .range_clock import CalendarClock
from .range_exceptions import (
    EventNotFoundError,
    EventStoreError,
    InvariantViolation,
    RangeEngineError,
    WindowValidationError,
)
from .range_expander import RecurrenceExpander, derive_occurrence_id, extract_source_event_id
from .range_merger import OccurrenceMerger
from .range_models import BaseEvent, Occurrence, QueryWindow, RecurrenceType
from .range_overlap import OverlapPredicate
from .range_query import RangeQueryService

__all__ = [
    "BaseEvent",
    "CalendarClock",
    "EventNotFoundError",
    "EventStoreError",
    "InvariantViolation",
    "Occurrence",
    "OccurrenceMerger",
    "OverlapPredicate",
    "QueryWindow",
    "RangeEngineError",
    "RangeQueryService",
    "RecurrenceExpander",
    "RecurrenceType",
    "WindowValidationError",
    "derive_occurrence_id",
    "extract_source_event_id",
    "run_server",
]


def _init_logging(level_name: Optional[str]) -> None:
    """Initialize root logging to stream to console.

    Honors CALENDAR_RANGE_DEBUG (truthy values: "1", "true", "yes", "on"),
    which forces DEBUG verbosity regardless of the requested level.
    """
    import logging
    import os
    import sys

    from colorlog import ColoredFormatter

    debug_env = os.environ.get("CALENDAR_RANGE_DEBUG", "")
    if debug_env.strip().lower() in ("1", "true", "yes", "on"):
        level_name = "DEBUG"

    root = logging.getLogger()
    # Only configure basic handler if no handlers are present to avoid duplicate output.
    if not root.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        # HH:MM:SS  LEVEL   logger.name: message, only the level colorized
        fmt = "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s %(name)s: %(message)s"
        log_colors = {
            "DEBUG": "cyan",
            "INFO": "green",
            "WARNING": "yellow",
            "ERROR": "red",
            "CRITICAL": "bold_red",
        }
        handler.setFormatter(ColoredFormatter(fmt, datefmt="%H:%M:%S", log_colors=log_colors))
        root.addHandler(handler)

    level = logging.INFO
    if isinstance(level_name, str):
        level = getattr(logging, level_name.upper(), logging.INFO)
    root.setLevel(level)
    logging.getLogger(__name__).debug(
        "Logging initialized at level %s", logging.getLevelName(level)
    )


def run_server(args: Optional[object] = None) -> None:
    """Start the calendar_range HTTP server.

    Configuration is read from CALENDAR_RANGE_* environment variables (and a
    .env file in the working directory); command line arguments override it.

    Args:
        args: Optional namespace with ``server_port``, ``events_file`` and ``log_level``
    """
    import logging
    import os

    from .api.server import start_server
    from .config_manager import Config, ConfigManager

    _init_logging(os.environ.get("CALENDAR_RANGE_LOG_LEVEL"))
    logger = logging.getLogger(__name__)

    config = ConfigManager().load_full_config()

    if args is not None:
        overrides = {
            key: getattr(args, key)
            for key in ("server_port", "events_file", "log_level")
            if getattr(args, key, None) is not None
        }
        if overrides:
            logger.debug("Applying command line overrides: %s", sorted(overrides))
            merged = {**config.__dict__, **overrides}
            config = Config.from_dict(merged)

    logging.getLogger().setLevel(getattr(logging, config.log_level, logging.INFO))
    logger.debug(
        "Resolved configuration (diagnostic): %s",
        {k: getattr(config, k) for k in ("events_file", "log_level", "server_bind", "server_port")},
    )

    start_server(config)
