"""Command-line entry for calendar_range.

Starts the HTTP server that exposes window queries over the in-memory event
store.
"""

from __future__ import annotations

import argparse
import sys
from typing import NoReturn

from . import run_server
from .range_exceptions import RangeEngineError


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for the calendar_range server.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="calendar_range",
        description="calendar_range - recurring event window query server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m calendar_range                                # Serve on default port (8080)
  python -m calendar_range --port 3000                    # Serve on port 3000
  python -m calendar_range --events-file events.json      # Seed the event store
        """,
    )

    parser.add_argument(
        "--port",
        dest="server_port",
        type=int,
        metavar="PORT",
        help="Port number for the web server (default: 8080, or CALENDAR_RANGE_SERVER_PORT)",
    )
    parser.add_argument(
        "--events-file",
        dest="events_file",
        metavar="PATH",
        help="JSON file with base event records (or CALENDAR_RANGE_EVENTS_FILE)",
    )
    parser.add_argument(
        "--log-level",
        dest="log_level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Root log level (default: INFO, or CALENDAR_RANGE_LOG_LEVEL)",
    )

    return parser


def main(argv: list[str] | None = None) -> NoReturn:
    """Run the calendar_range server CLI."""
    parser = _create_parser()
    args = parser.parse_args(argv)

    try:
        run_server(args)
    except RangeEngineError as exc:
        print(f"calendar_range failed to start: {exc}", file=sys.stderr)
        sys.exit(1)
    sys.exit(0)


if __name__ == "__main__":
    main()
