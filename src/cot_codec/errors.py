"""Error taxonomy and the ``Result`` value returned by every codec operation.

No codec entry point raises across its boundary.  Failures come back as a
:class:`Result` carrying one :class:`ErrorKind` and a human-readable
description; field-level problems that did not stop a decode are attached
as :class:`FieldNote` entries.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(enum.Enum):
    """One member per failure condition."""

    SUCCESS = "Success"
    INVALID_EVENT = "InvalidEvent"
    INVALID_POINT = "InvalidPoint"
    INVALID_DETAIL = "InvalidDetail"
    INVALID_DATE = "InvalidDate"
    INVALID_TIME = "InvalidTime"
    INVALID_HOW = "InvalidHow"
    INVALID_TYPE = "InvalidType"
    INVALID_XML = "InvalidXml"
    INVALID_INPUT = "InvalidInput"
    INVALID_TIME_SUB_SCHEMA = "InvalidTimeSubSchema"
    INVALID_SCHEMA = "InvalidSchema"
    INSUFFICIENT_DATA = "InsufficientData"
    STRUCTURE_DATA_INVALID = "StructureDataInvalid"
    PROCESSING_ERROR = "ProcessingError"
    NO_MODIFICATION_MADE = "NoModificationMade"
    GENERAL_ERROR = "GeneralError"

    @property
    def label(self) -> str:
        return self.value


@dataclass(frozen=True)
class FieldNote:
    """A soft, field-level problem absorbed during a best-effort decode."""

    kind: ErrorKind
    field: str
    description: str = ""


@dataclass
class Result(Generic[T]):
    """Outcome of a fallible operation.

    ``value`` may be populated even when ``kind`` is not ``SUCCESS``: a
    decode that passed the structural checks but failed the final validity
    gate still hands back the message it produced.
    """

    kind: ErrorKind = ErrorKind.SUCCESS
    description: str = ""
    value: Optional[T] = None
    notes: list[FieldNote] = field(default_factory=list)

    @classmethod
    def success(cls, value: Optional[T] = None, description: str = "") -> "Result[T]":
        return cls(kind=ErrorKind.SUCCESS, description=description, value=value)

    @classmethod
    def failure(
        cls,
        kind: ErrorKind,
        description: str = "",
        value: Optional[T] = None,
    ) -> "Result[T]":
        return cls(kind=kind, description=description, value=value)

    @property
    def ok(self) -> bool:
        """True for ``SUCCESS`` and ``NO_MODIFICATION_MADE``.

        "Nothing to do" is not an error; callers that need to know whether
        anything changed should look at the returned value.
        """
        return self.kind in (ErrorKind.SUCCESS, ErrorKind.NO_MODIFICATION_MADE)

    @property
    def is_success(self) -> bool:
        return self.kind is ErrorKind.SUCCESS

    def __str__(self) -> str:
        text = f"Result: {self.kind.label}"
        if self.description:
            text += f"; Description: {self.description}"
        return text
