"""DateTime helpers shared by the range engine and its HTTP boundary."""

import logging
from datetime import UTC, datetime, tzinfo
from typing import Optional

from dateutil import parser as dateutil_parser

logger = logging.getLogger(__name__)

# Compact UTC stamp used inside derived occurrence identifiers
INSTANCE_STAMP_FORMAT = "%Y%m%dT%H%M%SZ"


def ensure_timezone_aware(dt: datetime, default_tz: Optional[tzinfo] = None) -> datetime:
    """Ensure datetime is timezone-aware.

    Args:
        dt: Datetime to make timezone-aware
        default_tz: Zone assumed for naive values (UTC when omitted)

    Returns:
        Timezone-aware datetime; aware inputs are returned unchanged
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=default_tz or UTC)
    return dt


def parse_iso_datetime(value: str, default_tz: Optional[tzinfo] = None) -> datetime:
    """Parse an ISO-8601 timestamp into an aware datetime.

    Accepts both the extended form (``2024-01-03T00:00:00Z``) and date-only
    values (``2024-01-03``, read as midnight).

    Raises:
        ValueError: If the value is empty or not ISO-8601
    """
    if not value or not value.strip():
        raise ValueError("Empty timestamp")
    parsed = dateutil_parser.isoparse(value.strip())
    return ensure_timezone_aware(parsed, default_tz)


def format_instance_stamp(dt: datetime) -> str:
    """Format an instant as a compact UTC stamp, e.g. ``20240103T100000Z``."""
    return ensure_timezone_aware(dt).astimezone(UTC).strftime(INSTANCE_STAMP_FORMAT)


def serialize_iso(dt: Optional[datetime]) -> Optional[str]:
    """Serialize datetime to an ISO string, passing None through."""
    if dt is None:
        return None
    return dt.isoformat()
