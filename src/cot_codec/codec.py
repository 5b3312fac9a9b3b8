"""Codec entry points: decode, encode, patch and acknowledge CoT buffers.

Decode pipeline::

    raw buffer
      │
      ├─ no "<?xml" marker          → INVALID_XML
      ├─ XML parse failure          → PROCESSING_ERROR
      ├─ root is not <event>        → INVALID_EVENT
      ├─ not exactly one <point>    → INVALID_POINT
      ├─ more than one <detail>     → INVALID_DETAIL
      ├─ best-effort field decode   (soft problems → Result.notes)
      └─ aggregate validity gate    → SUCCESS or first failing rule,
                                      Message attached either way

Patch and acknowledge never re-serialize the document: they splice new
attribute text into the original bytes so that everything else (spacing,
attribute order, comments, unknown elements) survives untouched.

None of the public functions raise; every outcome is a :class:`Result`.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Union
from xml.sax.saxutils import escape

from cot_codec import xmltree
from cot_codec.details import Detail, Track, format_number
from cot_codec.errors import ErrorKind, FieldNote, Result
from cot_codec.grammar import ClassificationCode, HowCode, decode_how, decode_type
from cot_codec.models import Event, GeoPoint, Message
from cot_codec.timestamp import format_timestamp, parse_timestamp
from cot_codec.xmltree import Node, XmlValueError

logger = logging.getLogger(__name__)

XML_START_MARKER = "<?xml"
ACK_ATTRIBUTE = "acknowledgment"
ACK_VALUE = "ack"

# (model field, XML attribute) in wire order.
_POINT_ATTRIBUTES = (
    ("latitude", "lat"),
    ("longitude", "lon"),
    ("hae", "hae"),
    ("circular_error", "ce"),
    ("linear_error", "le"),
)

Buffer = Union[str, bytes]


@dataclass(frozen=True)
class PatchOutcome:
    """Result payload of :func:`apply_patch` and :func:`acknowledge`."""

    buffer: str
    changed: bool


# ── shared front end ────────────────────────────────────────────────


def _document_text(buffer: Buffer) -> Result[str]:
    """Drop anything before the XML declaration and decode the rest.

    Raw bytes are searched for the marker before decoding, so leading
    noise need not be valid UTF-8.
    """
    if isinstance(buffer, bytes):
        start = buffer.find(XML_START_MARKER.encode("ascii"))
        if start < 0:
            return Result.failure(ErrorKind.INVALID_XML, "No XML declaration found in buffer")
        if start > 0:
            logger.debug("Discarding %d bytes before the XML declaration", start)
            buffer = buffer[start:]
        try:
            buffer = buffer.decode("utf-8")
        except UnicodeDecodeError as exc:
            return Result.failure(ErrorKind.INVALID_INPUT, f"Buffer is not valid UTF-8: {exc}")
    if not isinstance(buffer, str):
        return Result.failure(
            ErrorKind.INVALID_INPUT, f"Expected str or bytes, got {type(buffer).__name__}"
        )
    start = buffer.find(XML_START_MARKER)
    if start < 0:
        return Result.failure(ErrorKind.INVALID_XML, "No XML declaration found in buffer")
    if start > 0:
        logger.debug("Discarding %d characters before the XML declaration", start)
    return Result.success(buffer[start:])


def _parse_document(buffer: Buffer) -> Result[xmltree.Tree]:
    text = _document_text(buffer)
    if not text.is_success:
        return text
    tree = xmltree.parse(text.value)
    if isinstance(tree, xmltree.ParseError):
        return Result.failure(ErrorKind.PROCESSING_ERROR, f"XML parse failed: {tree}")
    return Result.success(tree)


# ── decode ──────────────────────────────────────────────────────────


def decode(buffer: Buffer) -> Result[Message]:
    """Decode a CoT XML buffer into a :class:`Message`.

    Parameters
    ----------
    buffer:
        Raw text or UTF-8 bytes.  Leading noise before ``<?xml`` is
        ignored.

    Returns
    -------
    Result
        ``SUCCESS`` with the message; a validity-gate failure
        (``INVALID_EVENT``, ``INVALID_POINT``, ``INVALID_DETAIL``) with the
        message still attached; or a structural failure with no value.
        Soft field problems are listed in ``notes`` in every case where a
        message was produced.
    """
    try:
        return _decode(buffer)
    except Exception as exc:
        logger.exception("Unexpected error while decoding")
        return Result.failure(ErrorKind.GENERAL_ERROR, f"Unexpected error while decoding: {exc}")


def _decode(buffer: Buffer) -> Result[Message]:
    parsed = _parse_document(buffer)
    if not parsed.is_success:
        return parsed
    tree = parsed.value

    root = tree.child("event")
    if root is None:
        return Result.failure(
            ErrorKind.INVALID_EVENT,
            f"Expected exactly one <event> element, found root <{tree.root.name}>",
        )
    points = root.children("point")
    if len(points) != 1:
        return Result.failure(
            ErrorKind.INVALID_POINT,
            f"Expected exactly one <point> element, found {len(points)}",
        )
    details = root.children("detail")
    if len(details) > 1:
        return Result.failure(
            ErrorKind.INVALID_DETAIL,
            f"Expected at most one <detail> element, found {len(details)}",
        )

    notes: list[FieldNote] = []
    message = Message(
        event=_decode_event(root, notes),
        point=_decode_point(points[0], notes),
        detail=Detail.from_node(details[0], notes) if details else None,
    )
    for note in notes:
        logger.debug("Decode note [%s] %s: %s", note.kind.label, note.field, note.description)

    result = message.validate()
    result.notes = notes
    return result


def _decode_event(node: Node, notes: list[FieldNote]) -> Event:
    event = Event(uid=node.as_string("uid") or "")

    try:
        event.version = node.as_double("version")
    except XmlValueError as exc:
        notes.append(FieldNote(ErrorKind.INVALID_EVENT, "event.version", str(exc)))

    raw_type = node.as_string("type")
    if raw_type is not None:
        decoded = decode_type(raw_type)
        indicator, domain = decoded.value
        event.classification = ClassificationCode(raw_type, indicator, domain)
        if not decoded.is_success:
            notes.append(FieldNote(decoded.kind, "event.type", decoded.description))

    raw_how = node.as_string("how")
    if raw_how is not None:
        decoded = decode_how(raw_how)
        entry, data = decoded.value
        event.how = HowCode(raw_how, entry, data)
        if not decoded.is_success:
            notes.append(FieldNote(decoded.kind, "event.how", decoded.description))

    for name in ("time", "start", "stale"):
        text = node.as_string(name)
        if text is None:
            continue
        parsed = parse_timestamp(text)
        if parsed.is_success:
            setattr(event, name, parsed.value)
        else:
            notes.append(FieldNote(parsed.kind, f"event.{name}", parsed.description))
    return event


def _decode_point(node: Node, notes: list[FieldNote]) -> GeoPoint:
    point = GeoPoint()
    for field_name, xml_name in _POINT_ATTRIBUTES:
        try:
            setattr(point, field_name, node.as_double(xml_name))
        except XmlValueError as exc:
            notes.append(FieldNote(ErrorKind.INVALID_POINT, f"point.{xml_name}", str(exc)))
    return point


# ── encode ──────────────────────────────────────────────────────────


def encode(message: Message, pretty: bool = False) -> Result[str]:
    """Serialize a valid *message* to CoT XML text.

    Only set fields are written.  The output always starts with the
    standard declaration and is re-parsed once before being returned.

    Returns
    -------
    Result
        ``SUCCESS`` with the XML text, ``INVALID_SCHEMA`` when the message
        fails validation, or ``PROCESSING_ERROR`` when the generated text
        does not parse back.
    """
    try:
        return _encode(message, pretty)
    except Exception as exc:
        logger.exception("Unexpected error while encoding")
        return Result.failure(ErrorKind.GENERAL_ERROR, f"Unexpected error while encoding: {exc}")


def _encode(message: Message, pretty: bool) -> Result[str]:
    issues = message.validation_issues()
    if issues:
        return Result.failure(ErrorKind.INVALID_SCHEMA, issues[0].description)

    tree = xmltree.Tree.new("event", _event_attributes(message.event))
    tree.root.append_child("point", _point_attributes(message.point))
    if message.detail is not None:
        message.detail.to_node(tree.root)

    text = tree.serialize(pretty=pretty)
    check = xmltree.parse(text)
    if isinstance(check, xmltree.ParseError):
        return Result.failure(
            ErrorKind.PROCESSING_ERROR, f"Generated XML does not parse back: {check}"
        )
    return Result.success(text)


def _event_attributes(event: Event) -> dict[str, str]:
    attributes = {}
    if event.version is not None:
        attributes["version"] = repr(float(event.version))
    if event.uid:
        attributes["uid"] = event.uid
    if event.classification is not None:
        attributes["type"] = event.classification.raw
    for name in ("time", "start", "stale"):
        stamp = getattr(event, name)
        if stamp is not None:
            attributes[name] = format_timestamp(stamp)
    if event.how is not None:
        attributes["how"] = event.how.raw
    return attributes


def _point_attributes(point: GeoPoint) -> dict[str, str]:
    return {
        xml_name: format_number(getattr(point, field_name))
        for field_name, xml_name in _POINT_ATTRIBUTES
        if getattr(point, field_name) is not None
    }


# ── patch / acknowledge ─────────────────────────────────────────────


def apply_patch(
    original: Buffer,
    patch: Message,
    ack: bool = False,
    ack_value: str = ACK_VALUE,
) -> Result[PatchOutcome]:
    """Copy the latitude of *patch* into *original*, optionally acknowledging it.

    The first ``<point>`` gets its ``lat`` replaced (or appended when
    absent) unless the patch latitude is unset or numerically equal to
    the current one.  With *ack*, the first ``<status>`` gains
    ``acknowledgment`` when it does not already carry one.

    Returns
    -------
    Result
        ``SUCCESS`` with ``PatchOutcome(changed=True)``, or
        ``NO_MODIFICATION_MADE`` with the untouched buffer and
        ``changed=False``.  ``INVALID_XML`` / ``PROCESSING_ERROR`` when the
        original cannot be read.
    """
    try:
        return _patch(original, patch.point.latitude, ack, ack_value)
    except Exception as exc:
        logger.exception("Unexpected error while patching")
        return Result.failure(ErrorKind.GENERAL_ERROR, f"Unexpected error while patching: {exc}")


def acknowledge(original: Buffer, ack_value: str = ACK_VALUE) -> Result[PatchOutcome]:
    """Add ``acknowledgment`` to the first ``<status>`` of *original*."""
    try:
        return _patch(original, None, True, ack_value)
    except Exception as exc:
        logger.exception("Unexpected error while acknowledging")
        return Result.failure(
            ErrorKind.GENERAL_ERROR, f"Unexpected error while acknowledging: {exc}"
        )


def _patch(
    original: Buffer,
    latitude: Optional[float],
    ack: bool,
    ack_value: str,
) -> Result[PatchOutcome]:
    text = _document_text(original)
    if not text.is_success:
        return text
    data = text.value.encode("utf-8")

    spans = xmltree.element_spans(data, {"point", "status"})
    if isinstance(spans, xmltree.ParseError):
        return Result.failure(ErrorKind.PROCESSING_ERROR, f"XML parse failed: {spans}")
    point = next((s for s in spans if s.name == "point"), None)
    status = next((s for s in spans if s.name == "status"), None)

    edits: list[tuple[int, int, bytes]] = []
    if latitude is not None and math.isnan(latitude):
        latitude = None
    if latitude is not None and point is not None and not _same_number(
        point.attributes.get("lat"), latitude
    ):
        edits.append(_set_attribute_edit(data, point, "lat", format_number(latitude)))
    if ack and status is not None and ACK_ATTRIBUTE not in status.attributes:
        edits.append(_append_attribute_edit(data, status, ACK_ATTRIBUTE, ack_value))

    if not edits:
        return Result(
            kind=ErrorKind.NO_MODIFICATION_MADE,
            description="Nothing to change",
            value=PatchOutcome(text.value, changed=False),
        )

    for start, end, replacement in sorted(edits, reverse=True):
        data = data[:start] + replacement + data[end:]
    logger.debug("Applied %d attribute edit(s)", len(edits))
    return Result.success(PatchOutcome(data.decode("utf-8"), changed=True))


def _same_number(current: Optional[str], value: float) -> bool:
    if current is None:
        return False
    try:
        return float(current) == value
    except ValueError:
        return False


def _set_attribute_edit(
    data: bytes, span: xmltree.ElementSpan, name: str, value: str
) -> tuple[int, int, bytes]:
    tag = data[span.start:span.end]
    for attr_name, value_start, value_end in xmltree.iter_attribute_spans(tag):
        if attr_name == name.encode("utf-8"):
            return (
                span.start + value_start,
                span.start + value_end,
                escape(value, {'"': "&quot;"}).encode("utf-8"),
            )
    return _append_attribute_edit(data, span, name, value)


def _append_attribute_edit(
    data: bytes, span: xmltree.ElementSpan, name: str, value: str
) -> tuple[int, int, bytes]:
    position = span.end - 2 if data[span.end - 2:span.end] == b"/>" else span.end - 1
    while position > span.start and data[position - 1:position].isspace():
        position -= 1
    quoted = escape(value, {'"': "&quot;"})
    return position, position, f' {name}="{quoted}"'.encode("utf-8")


# ── supplementary helpers ───────────────────────────────────────────


def decode_track(buffer: Buffer) -> Result[Track]:
    """Extract just the ``<track>`` sub-schema of a message.

    The rest of the message does not need to be valid.  A buffer without
    a ``<detail>`` or without a ``<track>`` yields ``INSUFFICIENT_DATA``.
    """
    decoded = decode(buffer)
    message = decoded.value
    if message is None:
        return Result.failure(decoded.kind, decoded.description)
    if message.detail is None:
        return Result.failure(ErrorKind.INSUFFICIENT_DATA, "Message has no <detail> element")
    track = message.detail.track
    if track is None:
        return Result.failure(ErrorKind.INSUFFICIENT_DATA, "Message has no <track> element")

    error = track.validate()
    result = (
        Result.failure(ErrorKind.INVALID_DETAIL, f"<track>: {error}", value=track)
        if error
        else Result.success(track)
    )
    result.notes = [note for note in decoded.notes if note.field.startswith("track.")]
    return result


def verify_xml(buffer: Buffer) -> Result[None]:
    """Check that *buffer* holds a well-formed XML document."""
    try:
        parsed = _parse_document(buffer)
    except Exception as exc:
        logger.exception("Unexpected error while verifying XML")
        return Result.failure(ErrorKind.GENERAL_ERROR, f"Unexpected error while verifying: {exc}")
    if parsed.kind is ErrorKind.PROCESSING_ERROR:
        return Result.failure(ErrorKind.INVALID_XML, parsed.description)
    if not parsed.is_success:
        return Result.failure(parsed.kind, parsed.description)
    return Result.success()
