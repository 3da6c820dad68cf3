"""Configuration management for the calendar_range server."""

from __future__ import annotations

import logging
import os
import zoneinfo
from dataclasses import dataclass
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

ENV_PREFIX = "CALENDAR_RANGE_"

# Bounds for the longest window a single HTTP request may ask for
MIN_WINDOW_DAYS = 1
MAX_WINDOW_DAYS = 3660
DEFAULT_MAX_WINDOW_DAYS = 366


@dataclass
class Config:
    """Typed configuration for the calendar_range server.

    Fields:
        events_file: optional JSON file used to seed the in-memory event store
        server_bind: host to bind the HTTP server to
        server_port: port for the HTTP server
        log_level: logging level name
        debug_logging: enable DEBUG for calendar_range modules
        default_timezone: IANA zone used for naive timestamps in requests
        max_window_days: longest query window accepted over HTTP (1..3660)
    """

    events_file: str | None = None
    server_bind: str = "0.0.0.0"  # nosec: B104 - intentional default for local/dev; can be overridden via config/env
    server_port: int = 8080
    log_level: str = "INFO"
    debug_logging: bool = False
    default_timezone: str = "UTC"
    max_window_days: int = DEFAULT_MAX_WINDOW_DAYS

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Config:
        """Create Config from a plain mapping, applying defaults and validation.

        Numeric-like values are coerced to int, max_window_days is clamped to its
        allowed range and an invalid timezone falls back to UTC, logging a
        warning whenever a coercion happens.
        """
        if data is None:
            data = {}

        def _coerce_int(key: str, default: int) -> int:
            raw = data.get(key, default)
            try:
                return int(raw)
            except (TypeError, ValueError):
                logger.warning("Config %s=%r is not an int; using default %d", key, raw, default)
                return default

        max_window = _coerce_int("max_window_days", DEFAULT_MAX_WINDOW_DAYS)
        if max_window < MIN_WINDOW_DAYS:
            logger.warning("max_window_days %d below minimum; coercing to %d", max_window, MIN_WINDOW_DAYS)
            max_window = MIN_WINDOW_DAYS
        elif max_window > MAX_WINDOW_DAYS:
            logger.warning("max_window_days %d above maximum; coercing to %d", max_window, MAX_WINDOW_DAYS)
            max_window = MAX_WINDOW_DAYS

        events_file = data.get("events_file")
        events_file = str(events_file) if events_file else None

        server_bind = data.get("server_bind") or "0.0.0.0"  # nosec: B104 - fallback literal for empty/missing config

        log_level = data.get("log_level", "INFO")
        log_level = str(log_level).upper() if log_level is not None else "INFO"

        debug_raw = data.get("debug_logging", False)
        if isinstance(debug_raw, str):
            debug_logging = debug_raw.strip().lower() in ("1", "true", "yes", "on")
        else:
            debug_logging = bool(debug_raw)

        return cls(
            events_file=events_file,
            server_bind=str(server_bind),
            server_port=_coerce_int("server_port", 8080),
            log_level=log_level,
            debug_logging=debug_logging,
            default_timezone=validate_timezone(data.get("default_timezone") or "UTC"),
            max_window_days=max_window,
        )


class ConfigManager:
    """Manages application configuration from environment variables and .env files."""

    def __init__(self, env_file_path: Path | None = None):
        """Initialize configuration manager.

        Args:
            env_file_path: Optional path to .env file (defaults to .env in current directory)
        """
        self.env_file_path = env_file_path or Path.cwd() / ".env"

    def load_env_file(self) -> list[str]:
        """Load .env file and set environment variables.

        Only sets variables that are not already in the environment to avoid
        surprising overrides of user's environment.

        Returns:
            List of environment variable keys that were loaded from .env file
        """
        if not self.env_file_path.exists():
            logger.debug("No .env file found at %s", self.env_file_path)
            return []

        set_keys = []

        try:
            content = self.env_file_path.read_text(encoding="utf-8")
        except OSError:
            logger.warning("Failed to read .env file %s (continuing)", self.env_file_path, exc_info=True)
            return []

        for raw_line in content.splitlines():
            line = raw_line.strip()

            if not line or line.startswith("#") or "=" not in line:
                continue

            key, val = line.split("=", 1)
            key = key.strip()
            val = val.strip().strip('"').strip("'")

            if key and key not in os.environ:
                os.environ[key] = val
                set_keys.append(key)

        if set_keys:
            logger.debug("Loaded .env defaults for keys: %s", ", ".join(set_keys))

        return set_keys

    def build_config_from_env(self) -> dict[str, Any]:
        """Build configuration dictionary from environment variables.

        Recognizes:
        - CALENDAR_RANGE_EVENTS_FILE -> 'events_file'
        - CALENDAR_RANGE_SERVER_BIND -> 'server_bind'
        - CALENDAR_RANGE_SERVER_PORT -> 'server_port'
        - CALENDAR_RANGE_LOG_LEVEL -> 'log_level'
        - CALENDAR_RANGE_DEBUG -> 'debug_logging'
        - CALENDAR_RANGE_DEFAULT_TIMEZONE -> 'default_timezone'
        - CALENDAR_RANGE_MAX_WINDOW_DAYS -> 'max_window_days'

        Returns:
            Configuration dictionary suitable for Config.from_dict
        """
        mapping = {
            "EVENTS_FILE": "events_file",
            "SERVER_BIND": "server_bind",
            "SERVER_PORT": "server_port",
            "LOG_LEVEL": "log_level",
            "DEBUG": "debug_logging",
            "DEFAULT_TIMEZONE": "default_timezone",
            "MAX_WINDOW_DAYS": "max_window_days",
        }
        cfg: dict[str, Any] = {}
        for env_suffix, key in mapping.items():
            value = os.environ.get(f"{ENV_PREFIX}{env_suffix}")
            if value:
                cfg[key] = value
        return cfg

    def load_full_config(self) -> Config:
        """Load .env file and build a validated Config from the environment."""
        self.load_env_file()
        return Config.from_dict(self.build_config_from_env())


def validate_timezone(timezone: str, fallback: str = "UTC") -> str:
    """Return ``timezone`` if it is a valid IANA zone, otherwise ``fallback``."""
    try:
        zoneinfo.ZoneInfo(timezone)
        return timezone
    except (zoneinfo.ZoneInfoNotFoundError, ValueError):
        logger.warning("Invalid timezone %r, falling back to %r", timezone, fallback)
        return fallback
