"""Dataclass models for a CoT message: event envelope, point and detail bag.

A :class:`Message` is produced by :func:`cot_codec.codec.decode` or built
directly by the caller for :func:`cot_codec.codec.encode`.  Unset values
are ``None`` everywhere, never ``0`` or ``NaN``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Optional

from cot_codec.details import Detail
from cot_codec.errors import ErrorKind, Result
from cot_codec.grammar import ClassificationCode, HowCode
from cot_codec.timestamp import Timestamp

COT_VERSION = 2.0


@dataclass
class GeoPoint:
    """WGS-84 position with height above ellipsoid and error estimates."""

    latitude: Optional[float] = None
    longitude: Optional[float] = None
    hae: Optional[float] = None
    circular_error: Optional[float] = None
    linear_error: Optional[float] = None

    def missing_fields(self) -> list[str]:
        """Fields that are unset or NaN."""
        missing = []
        for name in ("latitude", "longitude", "hae", "circular_error", "linear_error"):
            value = getattr(self, name)
            if value is None or math.isnan(value):
                missing.append(name)
        return missing

    def validate(self) -> Optional[str]:
        missing = self.missing_fields()
        if missing:
            return f"Point is missing required fields: {', '.join(missing)}"
        return None

    @property
    def is_valid(self) -> bool:
        return not self.missing_fields()


@dataclass
class Event:
    """The ``<event>`` envelope.

    ``classification`` and ``how`` hold both the raw attribute text and
    its decoded enums; the raw text is what gets encoded.
    """

    version: Optional[float] = None
    uid: str = ""
    classification: Optional[ClassificationCode] = None
    time: Optional[Timestamp] = None
    start: Optional[Timestamp] = None
    stale: Optional[Timestamp] = None
    how: Optional[HowCode] = None

    @classmethod
    def create(
        cls,
        uid: str,
        type: str,
        how: str,
        time: Optional[Timestamp] = None,
        stale_after: timedelta = timedelta(minutes=5),
        version: float = COT_VERSION,
    ) -> "Event":
        """Build an event starting at *time* (default: now) going stale
        after *stale_after*.
        """
        time = time or Timestamp.now()
        stale = Timestamp.from_datetime(time.to_datetime() + stale_after)
        return cls(
            version=version,
            uid=uid,
            classification=ClassificationCode.parse(type),
            time=time,
            start=time,
            stale=stale,
            how=HowCode.parse(how),
        )

    def validation_errors(self) -> list[str]:
        errors = []
        if self.version is None or not self.version > 0:
            errors.append("Invalid version")
        if not self.uid:
            errors.append("Empty uid")
        if self.classification is None or not self.classification.raw:
            errors.append("Empty type")
        elif not self.classification.is_valid:
            errors.append(f"Invalid type {self.classification.raw!r}")
        for name in ("time", "start", "stale"):
            stamp = getattr(self, name)
            if stamp is None:
                errors.append(f"Missing {name}")
            elif not stamp.is_valid:
                errors.append(f"Invalid {name}: {stamp.validate().description}")
        if self.how is None or not self.how.raw:
            errors.append("Empty how")
        elif not self.how.is_valid:
            errors.append(f"Invalid how {self.how.raw!r}")
        return errors

    @property
    def is_valid(self) -> bool:
        return not self.validation_errors()


@dataclass
class Message:
    """A complete CoT message: event + point + optional detail bag."""

    event: Event = field(default_factory=Event)
    point: GeoPoint = field(default_factory=GeoPoint)
    detail: Optional[Detail] = None

    def validation_issues(self) -> list[Result]:
        """One failure :class:`Result` per broken aggregate rule."""
        issues: list[Result] = []
        for error in self.event.validation_errors():
            issues.append(Result.failure(ErrorKind.INVALID_EVENT, f"Event is invalid: {error}"))
        point_error = self.point.validate()
        if point_error:
            issues.append(Result.failure(ErrorKind.INVALID_POINT, point_error))
        if self.detail is not None:
            for error in self.detail.validation_errors():
                issues.append(
                    Result.failure(ErrorKind.INVALID_DETAIL, f"Detail is invalid: {error}")
                )
        return issues

    def validate(self) -> Result["Message"]:
        """The first broken rule, or ``SUCCESS`` carrying this message."""
        issues = self.validation_issues()
        if issues:
            first = issues[0]
            return Result.failure(first.kind, first.description, value=self)
        return Result.success(self)

    @property
    def is_valid(self) -> bool:
        return not self.validation_issues()

    def summary(self) -> str:
        """One-line human readable description."""
        event = self.event
        classification = event.classification.describe() if event.classification else "None"
        how = event.how.describe() if event.how else "None"
        return (
            f"{event.uid or '<no uid>'} [{classification}] via {how} "
            f"at {self.point.latitude},{self.point.longitude}"
        )
