"""Cursor-on-Target (CoT) XML codec.

Typical use::

    from cot_codec import decode, encode, acknowledge

    result = decode(buffer)
    if result.is_success:
        print(result.value.summary())
"""

__version__ = "0.1.0"

from cot_codec.codec import (  # noqa: E402
    PatchOutcome,
    acknowledge,
    apply_patch,
    decode,
    decode_track,
    encode,
    verify_xml,
)
from cot_codec.details import Detail  # noqa: E402
from cot_codec.errors import ErrorKind, FieldNote, Result  # noqa: E402
from cot_codec.models import Event, GeoPoint, Message  # noqa: E402
from cot_codec.timestamp import Timestamp, format_timestamp, parse_timestamp  # noqa: E402

__all__ = [
    "Detail",
    "ErrorKind",
    "Event",
    "FieldNote",
    "GeoPoint",
    "Message",
    "PatchOutcome",
    "Result",
    "Timestamp",
    "acknowledge",
    "apply_patch",
    "decode",
    "decode_track",
    "encode",
    "format_timestamp",
    "parse_timestamp",
    "verify_xml",
]
