"""Data models for the calendar range engine."""

import logging
from collections.abc import Mapping
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_serializer,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel
from pydantic_core import to_jsonable_python

from .range_datetime_utils import ensure_timezone_aware, serialize_iso
from .range_exceptions import InvariantViolation

logger = logging.getLogger(__name__)


class RecurrenceType(str, Enum):
    """Supported recurrence periods.

    Values match the persisted ``recurrenceType`` column.
    """

    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


def parse_recurrence_type(value: Any) -> RecurrenceType:
    """Parse a persisted recurrence tag, downgrading unknown values to NONE.

    A single malformed record must not break a whole window query, so null,
    empty and unrecognized tags all mean "non-recurring".
    """
    if isinstance(value, RecurrenceType):
        return value
    if value is None:
        return RecurrenceType.NONE
    if isinstance(value, str):
        normalized = value.strip().lower()
        if not normalized:
            return RecurrenceType.NONE
        try:
            return RecurrenceType(normalized)
        except ValueError:
            pass
    logger.warning("Unknown recurrence type %r; treating event as non-recurring", value)
    return RecurrenceType.NONE


# Field names owned by the engine; everything else on a BaseEvent is payload
ENGINE_FIELDS = frozenset(
    {"id", "start_date", "end_date", "recurrence", "recurrence_end_date"}
)


class BaseEvent(BaseModel):
    """Persisted calendar event, optionally carrying a recurrence rule.

    Accepts both the snake_case attribute names and the camelCase record layout
    (``startDate``, ``recurrenceType``, ``recurrenceEndDate``), including the
    legacy ``recurringType`` / ``recurringEndDate`` spellings. Unknown fields are
    kept as opaque payload.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="allow",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    id: str = Field(..., min_length=1, description="Stable event identifier")
    start_date: datetime = Field(..., description="Anchor instance start")
    end_date: datetime = Field(..., description="Anchor instance end")
    recurrence: RecurrenceType = Field(
        default=RecurrenceType.NONE,
        validation_alias=AliasChoices(
            "recurrence", "recurrenceType", "recurrence_type", "recurringType"
        ),
        serialization_alias="recurrenceType",
    )
    recurrence_end_date: Optional[datetime] = Field(
        default=None,
        validation_alias=AliasChoices(
            "recurrenceEndDate", "recurrence_end_date", "recurringEndDate"
        ),
        serialization_alias="recurrenceEndDate",
    )

    # Descriptive payload
    title: str = Field(default="", description="Event title")
    description: Optional[str] = Field(default=None, description="Event description")
    location: Optional[str] = Field(default=None, description="Event location")
    all_day: bool = Field(default=False, description="All-day event flag")
    color: Optional[str] = Field(default=None, description="Display color")
    task_id: Optional[str] = Field(default=None, description="Linked task")
    user_id: Optional[str] = Field(default=None, description="Owning principal")

    @field_validator("recurrence", mode="before")
    @classmethod
    def _coerce_recurrence(cls, value: Any) -> RecurrenceType:
        return parse_recurrence_type(value)

    @field_validator("start_date", "end_date", "recurrence_end_date", mode="after")
    @classmethod
    def _make_aware(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is None:
            return None
        return ensure_timezone_aware(value)

    @model_validator(mode="after")
    def _check_invariants(self) -> "BaseEvent":
        if self.end_date < self.start_date:
            raise ValueError(
                f"endDate {self.end_date.isoformat()} is before startDate "
                f"{self.start_date.isoformat()}"
            )
        if self.recurrence_end_date is not None and self.recurrence_end_date < self.start_date:
            raise ValueError(
                f"recurrenceEndDate {self.recurrence_end_date.isoformat()} is before "
                f"startDate {self.start_date.isoformat()}"
            )
        return self

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "BaseEvent":
        """Build a BaseEvent from a persisted record.

        Args:
            record: Mapping in the persisted layout (camelCase or snake_case)

        Returns:
            Validated BaseEvent

        Raises:
            InvariantViolation: If the record is malformed or breaks an invariant
        """
        try:
            return cls.model_validate(dict(record))
        except ValidationError as e:
            event_id = record.get("id")
            reasons = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'event'}: {err['msg']}"
                for err in e.errors()
            )
            raise InvariantViolation(
                f"Invalid base event {event_id!r}: {reasons}",
                event_id=str(event_id) if event_id is not None else None,
            ) from e

    @property
    def is_recurring(self) -> bool:
        """Whether this event generates virtual instances."""
        return self.recurrence != RecurrenceType.NONE

    @property
    def duration(self) -> timedelta:
        """Series duration, shared by every instance."""
        return self.end_date - self.start_date

    def payload(self) -> dict[str, Any]:
        """Descriptive fields carried through to every occurrence unchanged."""
        return self.model_dump(by_alias=True, exclude=set(ENGINE_FIELDS))

    def to_record(self) -> dict[str, Any]:
        """Serialize back to the JSON record layout."""
        return self.model_dump(by_alias=True, mode="json")


class Occurrence(BaseModel):
    """Concrete instance of a base event inside a query window.

    Occurrences are derived on every query and never persisted; the owning
    BaseEvent is the only source of truth.
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    source_event_id: str = Field(..., description="Owning BaseEvent id")
    occurrence_id: str = Field(..., description="Stable instance identifier")
    start_date: datetime = Field(..., description="Instance start")
    end_date: datetime = Field(..., description="Instance end")
    is_virtual: bool = Field(default=False, description="True if generated by expansion")
    payload: dict[str, Any] = Field(default_factory=dict, description="Pass-through fields")

    @classmethod
    def for_anchor(cls, event: BaseEvent) -> "Occurrence":
        """Build the non-virtual occurrence for the stored event itself."""
        return cls(
            source_event_id=event.id,
            occurrence_id=event.id,
            start_date=event.start_date,
            end_date=event.end_date,
            is_virtual=False,
            payload=event.payload(),
        )

    @field_serializer("start_date", "end_date")
    def serialize_datetime(self, dt: datetime) -> Optional[str]:
        """Serialize datetime fields to ISO format."""
        return serialize_iso(dt)

    def to_api_dict(self) -> dict[str, Any]:
        """Flatten into the JSON shape returned by the HTTP API.

        Payload fields come first so the engine-owned fields always win.
        """
        data: dict[str, Any] = to_jsonable_python(self.payload)
        data.update(self.model_dump(by_alias=True, exclude={"payload"}))
        return data


class QueryWindow(BaseModel):
    """Inclusive ``[start, end]`` range supplied by the caller.

    An inverted window (``end < start``) is valid and contains nothing.
    """

    model_config = ConfigDict(frozen=True)

    start: datetime = Field(..., description="Window start (inclusive)")
    end: datetime = Field(..., description="Window end (inclusive)")

    @field_validator("start", "end", mode="after")
    @classmethod
    def _make_aware(cls, value: datetime) -> datetime:
        return ensure_timezone_aware(value)

    @property
    def is_empty(self) -> bool:
        """True when the window cannot contain any timestamp."""
        return self.end < self.start

    @property
    def length(self) -> timedelta:
        return self.end - self.start

    def contains(self, ts: datetime) -> bool:
        """Inclusive containment check."""
        return self.start <= ts <= self.end
