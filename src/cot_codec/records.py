"""Dataclass models for the NDJSON records written by the CLI.

All models are designed to be serializable via ``dataclasses.asdict()``
followed by ``orjson.dumps()``.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class SourceInfo:
    """Provenance metadata attached to every output record."""

    path: Optional[str] = None
    size_bytes: int = 0


@dataclass
class DecodedRecord:
    """A buffer that decoded and passed the validity gate."""

    event_type: str = "decoded"
    received_at: str = ""
    summary: str = ""
    message: dict = field(default_factory=dict)
    notes: list = field(default_factory=list)
    source: Optional[dict] = field(default_factory=dict)


@dataclass
class ErrorDetail:
    """Structured error information for malformed records."""

    code: str = ""
    message: str = ""
    notes: list = field(default_factory=list)
    raw_payload: str = ""
    raw_payload_truncated: bool = False


@dataclass
class MalformedRecord:
    """Wrapper for buffers that fail to decode or fail validation.

    These are *never* silently dropped.  ``partial`` carries whatever the
    best-effort decode produced, or ``None`` for structural failures.
    """

    event_type: str = "malformed"
    received_at: str = ""
    error: dict = field(default_factory=dict)
    partial: Optional[dict] = None
    source: Optional[dict] = field(default_factory=dict)
