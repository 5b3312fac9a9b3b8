"""CoT timestamp parsing, formatting and calendar validation.

Wire format::

    YYYY-MM-DDThh:mm:ss.ssZ      e.g. 2022-12-22T18:06:59.36Z

Parsing and validation are separate steps: a string that splits cleanly
but names month 13 still parses, then fails validation with
``INVALID_DATE`` rather than being clamped.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, fields
from datetime import datetime, timezone
from typing import Optional

from cot_codec.errors import ErrorKind, Result

MIN_YEAR = 1970

_DAYS_IN_MONTH = (31, 28, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31)


def is_leap_year(year: int) -> bool:
    return (year % 4 == 0 and year % 100 != 0) or year % 400 == 0


def days_in_month(year: int, month: int) -> int:
    if month == 2 and is_leap_year(year):
        return 29
    return _DAYS_IN_MONTH[month - 1]


@dataclass(frozen=True)
class Timestamp:
    """A UTC calendar date and time-of-day with fractional seconds."""

    year: int
    month: int
    day: int
    hour: int = 0
    minute: int = 0
    second: float = 0.0

    # ── validation ──────────────────────────────────────────────────

    def date_error(self) -> Optional[str]:
        if self.year < MIN_YEAR:
            return f"Year must be >= {MIN_YEAR}"
        if not 1 <= self.month <= 12:
            return "Month must be between 1 and 12"
        max_day = days_in_month(self.year, self.month)
        if not 1 <= self.day <= max_day:
            return f"Day must be between 1 and {max_day}"
        return None

    def time_error(self) -> Optional[str]:
        if not 0 <= self.hour < 24:
            return "Hour must be < 24"
        if not 0 <= self.minute < 60:
            return "Minute must be < 60"
        if math.isnan(self.second) or not 0.0 <= self.second < 60.0:
            return "Second must be between 0 and 59.999..."
        return None

    def validate(self) -> Result["Timestamp"]:
        """Check the date, then the time; report the first broken rule."""
        error = self.date_error()
        if error:
            return Result.failure(ErrorKind.INVALID_DATE, error)
        error = self.time_error()
        if error:
            return Result.failure(ErrorKind.INVALID_TIME, error)
        return Result.success(self)

    @property
    def is_valid(self) -> bool:
        return self.validate().is_success

    # ── construction helpers ────────────────────────────────────────

    @classmethod
    def from_datetime(cls, value: datetime) -> "Timestamp":
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return cls(
            year=value.year,
            month=value.month,
            day=value.day,
            hour=value.hour,
            minute=value.minute,
            second=value.second + value.microsecond / 1_000_000,
        )

    @classmethod
    def now(cls) -> "Timestamp":
        """Current UTC time at whole-second resolution."""
        return cls.from_datetime(datetime.now(timezone.utc).replace(microsecond=0))

    def to_datetime(self) -> datetime:
        whole = int(self.second)
        micro = int(round((self.second - whole) * 1_000_000))
        return datetime(
            self.year, self.month, self.day, self.hour, self.minute,
            whole, min(micro, 999_999), tzinfo=timezone.utc,
        )

    def replace(self, **changes) -> Result["Timestamp"]:
        """Return a copy with *changes* applied, only if the copy is valid.

        Unknown field names yield ``INVALID_INPUT``; the original value is
        never modified.
        """
        names = {f.name for f in fields(self)}
        unknown = sorted(set(changes) - names)
        if unknown:
            return Result.failure(
                ErrorKind.INVALID_INPUT, f"Unknown timestamp fields: {', '.join(unknown)}"
            )
        values = {name: getattr(self, name) for name in names}
        values.update(changes)
        return Timestamp(**values).validate()

    def __str__(self) -> str:
        return format_timestamp(self)


def parse_timestamp(text: str) -> Result[Timestamp]:
    """Parse and validate a CoT timestamp string.

    Returns
    -------
    Result
        ``SUCCESS`` with the :class:`Timestamp`, or one of
        ``INVALID_INPUT`` (empty), ``INVALID_TIME_SUB_SCHEMA`` (no single
        ``T`` separator), ``INVALID_DATE`` / ``INVALID_TIME`` (bad token
        count, non-numeric token, or out-of-range value).
    """
    if not text or not text.strip():
        return Result.failure(ErrorKind.INVALID_INPUT, "Empty timestamp string")

    parts = text.strip().split("T")
    if len(parts) != 2:
        return Result.failure(
            ErrorKind.INVALID_TIME_SUB_SCHEMA,
            f"Invalid timestamp {text!r}: expected a single 'T' separator",
        )
    date_text, time_text = parts

    date_parts = date_text.split("-")
    if len(date_parts) != 3:
        return Result.failure(
            ErrorKind.INVALID_DATE, f"Invalid date {date_text!r}: expected YYYY-MM-DD"
        )
    try:
        year, month, day = (int(p) for p in date_parts)
    except ValueError as exc:
        return Result.failure(ErrorKind.INVALID_DATE, f"Invalid date {date_text!r}: {exc}")

    if time_text.endswith("Z"):
        time_text = time_text[:-1]
    time_parts = time_text.split(":")
    if len(time_parts) != 3:
        return Result.failure(
            ErrorKind.INVALID_TIME, f"Invalid time {time_text!r}: expected hh:mm:ss.ss"
        )
    try:
        hour = int(time_parts[0])
        minute = int(time_parts[1])
        second = float(time_parts[2])
    except ValueError as exc:
        return Result.failure(ErrorKind.INVALID_TIME, f"Invalid time {time_text!r}: {exc}")

    return Timestamp(year, month, day, hour, minute, second).validate()


def format_timestamp(value: Timestamp) -> str:
    """Render *value* as ``YYYY-MM-DDThh:mm:ss.ssZ``.

    Seconds are truncated to hundredths so that 59.999 renders as
    ``59.99`` and never as an out-of-range ``60.00``.
    """
    centis = min(math.floor(round(value.second * 100, 6)), 5999)
    return (
        f"{value.year:04d}-{value.month:02d}-{value.day:02d}"
        f"T{value.hour:02d}:{value.minute:02d}:{centis // 100:02d}.{centis % 100:02d}Z"
    )
