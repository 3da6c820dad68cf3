"""aiohttp server for calendar_range.

Wires the in-memory event store and the range query service to the HTTP
routes and runs the application until SIGINT/SIGTERM.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal

from aiohttp import web

from ..config_manager import Config
from ..event_store import InMemoryEventStore
from ..middleware import correlation_id_middleware
from ..range_logging import configure_range_logging
from ..range_query import RangeQueryService
from .routes import register_event_routes

logger = logging.getLogger(__name__)


def build_event_store(config: Config) -> InMemoryEventStore:
    """Create the event store, seeding it from ``config.events_file`` if set.

    Raises:
        EventStoreError: If the seed file cannot be read
        InvariantViolation: If a seeded record is malformed
    """
    if not config.events_file:
        logger.info("No events file configured; starting with an empty event store")
        return InMemoryEventStore()
    return InMemoryEventStore.from_json_file(config.events_file)


def create_app(
    config: Config,
    store: InMemoryEventStore,
    query_service: RangeQueryService | None = None,
) -> web.Application:
    """Create aiohttp web application with routes wired to the event store."""
    app = web.Application(middlewares=[correlation_id_middleware])

    register_event_routes(
        app=app,
        config=config,
        store=store,
        query_service=query_service or RangeQueryService(),
    )

    async def _shutdown(_app: web.Application) -> None:
        logger.info("Application shutdown requested")

    app.on_shutdown.append(_shutdown)
    return app


async def _serve(
    config: Config,
    store: InMemoryEventStore,
    external_stop_event: asyncio.Event | None = None,
) -> None:
    """Run the HTTP server until signalled to stop.

    Args:
        config: Server configuration
        store: Event store to serve
        external_stop_event: Optional event to signal shutdown. If provided,
            signal handlers are NOT registered (caller owns signal handling).
    """
    stop_event = external_stop_event or asyncio.Event()

    runner = web.AppRunner(create_app(config, store))
    await runner.setup()
    site = web.TCPSite(runner, config.server_bind, config.server_port)
    await site.start()
    logger.info(
        "calendar_range listening on http://%s:%d (%d events loaded)",
        config.server_bind,
        config.server_port,
        len(store),
    )

    if external_stop_event is None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            # Not available on Windows event loops
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(sig, stop_event.set)

    try:
        await stop_event.wait()
    finally:
        await runner.cleanup()
        logger.info("Server shutdown complete")


def start_server(config: Config) -> None:
    """Start the asyncio event loop and HTTP server.

    Blocks the calling thread until SIGINT/SIGTERM is received.

    Raises:
        EventStoreError: If the configured seed file cannot be loaded
        InvariantViolation: If a seeded record is malformed
    """
    configure_range_logging(debug_mode=config.debug_logging, log_level=config.log_level)
    logger.debug("Logging configuration applied: debug_mode=%s", config.debug_logging)

    store = build_event_store(config)

    try:
        asyncio.run(_serve(config, store))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
