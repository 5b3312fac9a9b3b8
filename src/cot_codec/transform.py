"""Transform decode results into NDJSON ``decoded`` / ``malformed`` records.

Enums are rendered by their display labels, timestamps in CoT wire form
and unset values as ``null``, so the output is plain JSON that does not
need this package to be read.
"""

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime, timezone
from typing import Optional

import orjson

from cot_codec.details import Detail, Track
from cot_codec.errors import FieldNote, Result
from cot_codec.models import Event, Message
from cot_codec.records import DecodedRecord, ErrorDetail, MalformedRecord, SourceInfo

# Maximum bytes of raw payload preserved in malformed records.
MAX_RAW_PAYLOAD_BYTES = 4096


class Transformer:
    """Decode :class:`Result` → serialized NDJSON bytes."""

    def __init__(self, max_raw_payload_bytes: int = MAX_RAW_PAYLOAD_BYTES) -> None:
        self._max_raw_payload_bytes = max_raw_payload_bytes

    def transform(
        self,
        result: Result[Message],
        raw: str | bytes,
        path: Optional[str] = None,
    ) -> bytes:
        """Convert a decode *result* into a newline-terminated NDJSON line.

        Parameters
        ----------
        result:
            The value returned by :func:`cot_codec.codec.decode`.
        raw:
            The buffer that was decoded; only kept for malformed records.
        path:
            Where *raw* came from, for ``source.path``.

        Returns
        -------
        bytes
            ``orjson``-serialized NDJSON line (newline-terminated).
        """
        raw_bytes = raw.encode("utf-8") if isinstance(raw, str) else raw
        source = asdict(SourceInfo(path=path, size_bytes=len(raw_bytes)))
        now = datetime.now(timezone.utc).isoformat()

        if result.is_success:
            record = DecodedRecord(
                received_at=now,
                summary=result.value.summary(),
                message=message_to_dict(result.value),
                notes=[note_to_dict(n) for n in result.notes],
                source=source,
            )
        else:
            record = self._malformed(result, raw_bytes, now, source)
        return orjson.dumps(asdict(record), option=orjson.OPT_APPEND_NEWLINE)

    def transform_track(self, track: Track) -> bytes:
        """Serialize a bare :class:`Track` to NDJSON bytes."""
        return orjson.dumps(asdict(track), option=orjson.OPT_APPEND_NEWLINE)

    def _malformed(
        self,
        result: Result,
        raw_bytes: bytes,
        now: str,
        source: dict,
    ) -> MalformedRecord:
        """Build a :class:`MalformedRecord` with truncation handling."""
        truncated = len(raw_bytes) > self._max_raw_payload_bytes
        if truncated:
            raw_bytes = raw_bytes[: self._max_raw_payload_bytes]
        partial = message_to_dict(result.value) if isinstance(result.value, Message) else None

        return MalformedRecord(
            received_at=now,
            error=asdict(ErrorDetail(
                code=result.kind.label,
                message=result.description,
                notes=[note_to_dict(n) for n in result.notes],
                raw_payload=raw_bytes.decode("utf-8", errors="ignore"),
                raw_payload_truncated=truncated,
            )),
            partial=partial,
            source=source,
        )


# ── helpers ─────────────────────────────────────────────────────────


def note_to_dict(note: FieldNote) -> dict:
    return {"code": note.kind.label, "field": note.field, "message": note.description}


def event_to_dict(event: Event) -> dict:
    classification = event.classification
    how = event.how
    return {
        "version": event.version,
        "uid": event.uid,
        "type": classification.raw if classification else None,
        "indicator": classification.indicator.label if classification else None,
        "domain": classification.domain.label if classification else None,
        "how": how.raw if how else None,
        "entry": how.entry.label if how else None,
        "data": how.data.label if how else None,
        "time": str(event.time) if event.time else None,
        "start": str(event.start) if event.start else None,
        "stale": str(event.stale) if event.stale else None,
    }


def detail_to_dict(detail: Optional[Detail]) -> Optional[dict]:
    if detail is None:
        return None
    data = asdict(detail)
    for link, rendered in zip(detail.links, data["links"]):
        rendered["latitude"] = link.latitude
        rendered["longitude"] = link.longitude
    return data


def message_to_dict(message: Message) -> dict:
    return {
        "event": event_to_dict(message.event),
        "point": asdict(message.point),
        "detail": detail_to_dict(message.detail),
    }
