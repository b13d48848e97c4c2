"""
Wire shapes for progress records, validated at the storage boundary.

Both the device cache payload and the remote row are parsed leniently:
malformed fields fall back to safe defaults instead of raising, so a bad
payload degrades to "less progress" rather than a crash.
"""

import json
import logging
import math
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from fluentia.domain.constants import CURRENT_CACHE_SCHEMA_VERSION
from fluentia.domain.models import ProgressRecord, SchedulingState

logger = logging.getLogger(__name__)


def parse_timestamp(value: Any) -> int:
    """
    Coerce a timestamp of unknown representation to epoch milliseconds.

    Accepted:
        - int / float epoch ms (floats truncated; NaN and infinities -> 0)
        - numeric strings, treated as epoch ms
        - ISO-8601 strings, with `Z` or an offset; naive values are UTC
        - datetime objects; naive values are UTC

    Anything else (None, bools, unparsable text) -> 0.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    if isinstance(value, datetime):
        return to_epoch_ms(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return parse_timestamp(float(text))
        except ValueError:
            pass
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            return to_epoch_ms(datetime.fromisoformat(text))
        except ValueError:
            return 0
    return 0


def to_epoch_ms(moment: datetime) -> int:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(round(moment.timestamp() * 1000))


def from_epoch_ms(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def format_timestamp(value: int) -> str:
    """Epoch ms -> ISO-8601 UTC with millisecond precision, e.g. `2024-01-01T00:00:00.000Z`."""
    return from_epoch_ms(value).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _string_items(value: Any) -> list[str]:
    if not isinstance(value, list | tuple):
        return []
    # Keep first occurrence order, drop non-strings
    return list(dict.fromkeys(x for x in value if isinstance(x, str)))


def _int_or_zero(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return int(value)
    return 0


class ScheduleShape(BaseModel):
    """JSON shape of one SchedulingState."""

    model_config = ConfigDict(populate_by_name=True)

    interval_days: int = Field(default=1, alias="intervalDays", ge=1)
    ease_factor: float = Field(default=2.5, alias="easeFactor", ge=1.3)
    repetitions: int = Field(default=0, ge=0)
    next_due: datetime | None = Field(default=None, alias="nextDue")

    @field_validator("next_due", mode="after")
    @classmethod
    def assume_utc(cls, v: datetime | None) -> datetime | None:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    def to_state(self) -> SchedulingState:
        return SchedulingState(
            interval_days=self.interval_days,
            ease_factor=self.ease_factor,
            repetitions=self.repetitions,
            next_due=self.next_due,
        )

    @classmethod
    def from_state(cls, state: SchedulingState) -> "ScheduleShape":
        return cls(
            interval_days=state.interval_days,
            ease_factor=state.ease_factor,
            repetitions=state.repetitions,
            next_due=state.next_due,
        )

    def dump(self) -> dict[str, Any]:
        data = self.model_dump(mode="json", by_alias=True)
        if self.next_due is not None:
            data["nextDue"] = format_timestamp(to_epoch_ms(self.next_due))
        return data


def _parse_schedules(value: Any) -> dict[str, SchedulingState]:
    if not isinstance(value, dict):
        return {}
    schedules: dict[str, SchedulingState] = {}
    for item_id, raw in value.items():
        if not isinstance(item_id, str) or not isinstance(raw, dict):
            continue
        try:
            schedules[item_id] = ScheduleShape.model_validate(raw).to_state()
        except ValidationError as e:
            logger.warning(f"Dropping invalid schedule for '{item_id}': {e.error_count()} errors")
    return schedules


def _dump_schedules(record: ProgressRecord) -> dict[str, Any]:
    return {
        item_id: ScheduleShape.from_state(state).dump()
        for item_id, state in record.schedules.items()
    }


class CachedProgress(BaseModel):
    """Device cache payload, tagged with the schema version that wrote it."""

    model_config = ConfigDict(populate_by_name=True)

    schema_version: int = Field(default=CURRENT_CACHE_SCHEMA_VERSION, alias="schema")
    completed: list[str] = Field(default_factory=list)
    updated_at: int = Field(default=0, alias="updatedAt")
    version: int = 0
    schedules: dict[str, Any] = Field(default_factory=dict)

    @field_validator("completed", mode="before")
    @classmethod
    def keep_strings(cls, v: Any) -> list[str]:
        return _string_items(v)

    @field_validator("updated_at", mode="before")
    @classmethod
    def coerce_updated_at(cls, v: Any) -> int:
        # The cache always stores numbers; anything else is untrusted
        if isinstance(v, int | float) and not isinstance(v, bool):
            return parse_timestamp(v)
        return 0

    @field_validator("version", mode="before")
    @classmethod
    def coerce_version(cls, v: Any) -> int:
        return _int_or_zero(v)

    @field_validator("schedules", mode="before")
    @classmethod
    def coerce_schedules(cls, v: Any) -> dict[str, Any]:
        return v if isinstance(v, dict) else {}

    def to_record(self) -> ProgressRecord:
        return ProgressRecord(
            completed=tuple(self.completed),
            updated_at=self.updated_at,
            version=self.version,
            schedules=_parse_schedules(self.schedules),
        )

    @classmethod
    def from_record(cls, record: ProgressRecord) -> "CachedProgress":
        return cls(
            completed=list(record.completed),
            updated_at=record.updated_at,
            version=record.version,
            schedules=_dump_schedules(record),
        )


class RemoteProgressRow(BaseModel):
    """
    Row of the remote `user_progress` table.

    `updated_at` arrives as an ISO string from PostgREST, but older clients
    wrote epoch numbers; both go through `parse_timestamp`.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    user_id: str | None = None
    completed: list[str] = Field(default_factory=list)
    updated_at: int = 0
    version: int = 0
    schedules: dict[str, Any] = Field(default_factory=dict)

    @field_validator("completed", mode="before")
    @classmethod
    def keep_strings(cls, v: Any) -> list[str]:
        return _string_items(v)

    @field_validator("updated_at", mode="before")
    @classmethod
    def coerce_updated_at(cls, v: Any) -> int:
        return parse_timestamp(v)

    @field_validator("version", mode="before")
    @classmethod
    def coerce_version(cls, v: Any) -> int:
        return _int_or_zero(v)

    @field_validator("schedules", mode="before")
    @classmethod
    def coerce_schedules(cls, v: Any) -> dict[str, Any]:
        return v if isinstance(v, dict) else {}

    def to_record(self) -> ProgressRecord:
        return ProgressRecord(
            completed=tuple(self.completed),
            updated_at=self.updated_at,
            version=self.version,
            schedules=_parse_schedules(self.schedules),
        )

    @staticmethod
    def dump_record(user_id: str, record: ProgressRecord) -> dict[str, Any]:
        return {
            "user_id": user_id,
            "completed": list(record.completed),
            "updated_at": format_timestamp(record.updated_at),
            "version": record.version,
            "schedules": _dump_schedules(record),
        }


def decode_cached(raw: str) -> ProgressRecord | None:
    """
    Parse a cache payload. Returns None for anything that is not a JSON object.

    Raises nothing.
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        return None
    if not isinstance(data, dict):
        return None
    try:
        cached = CachedProgress.model_validate(data)
    except ValidationError:
        return None
    if cached.schema_version != CURRENT_CACHE_SCHEMA_VERSION:
        return None
    return cached.to_record()


def encode_cached(record: ProgressRecord) -> str:
    return CachedProgress.from_record(record).model_dump_json(by_alias=True)
