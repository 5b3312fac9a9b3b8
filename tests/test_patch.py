"""Tests for apply_patch and acknowledge."""

from cot_codec.codec import acknowledge, apply_patch, decode
from cot_codec.errors import ErrorKind
from cot_codec.models import GeoPoint, Message

from conftest import DECLARATION, make_event_xml

STATUS = '<status battery="100"/>'
ACKED_STATUS = '<status battery="100" acknowledgment="ack"/>'
LAT = 'lat="31.5990919461411"'


def _lat(value) -> Message:
    return Message(point=GeoPoint(latitude=value))


# ── acknowledge ─────────────────────────────────────────────────────


def test_acknowledge_touches_only_status(sample_xml: str) -> None:
    result = acknowledge(sample_xml)
    assert result.kind is ErrorKind.SUCCESS
    assert result.value.changed
    assert result.value.buffer == sample_xml.replace(STATUS, ACKED_STATUS)


def test_acknowledge_never_duplicates(sample_xml: str) -> None:
    first = acknowledge(sample_xml).value.buffer
    second = acknowledge(first)
    assert second.kind is ErrorKind.NO_MODIFICATION_MADE
    assert second.ok
    assert not second.value.changed
    assert second.value.buffer == first
    assert first.count("acknowledgment") == 1


def test_acknowledge_without_status_is_no_op() -> None:
    xml = make_event_xml()
    result = acknowledge(xml)
    assert result.kind is ErrorKind.NO_MODIFICATION_MADE
    assert result.value.buffer == xml


def test_acknowledge_drops_leading_noise(noisy_buffer: str, sample_xml: str) -> None:
    result = acknowledge(noisy_buffer)
    assert result.value.buffer == sample_xml.replace(STATUS, ACKED_STATUS)


def test_acknowledge_skips_binary_noise(sample_xml: str) -> None:
    result = acknowledge(b"\xff\xfe\x80" + sample_xml.encode("utf-8"))
    assert result.kind is ErrorKind.SUCCESS
    assert result.value.buffer == sample_xml.replace(STATUS, ACKED_STATUS)


def test_patch_skips_binary_noise(sample_xml: str) -> None:
    result = apply_patch(b"\xff\xfe\x80" + sample_xml.encode("utf-8"), _lat(12.5))
    assert result.kind is ErrorKind.SUCCESS
    assert result.value.buffer.startswith(DECLARATION)
    assert 'lat="12.5"' in result.value.buffer


def test_acknowledge_open_close_status() -> None:
    xml = make_event_xml(detail='<detail><status battery="5" ></status></detail>')
    result = acknowledge(xml)
    assert '<status battery="5" acknowledgment="ack" ></status>' in result.value.buffer


def test_acknowledge_custom_value(sample_xml: str) -> None:
    result = acknowledge(sample_xml, ack_value='seen "1"')
    assert 'acknowledgment="seen &quot;1&quot;"' in result.value.buffer
    assert decode(result.value.buffer).value.detail.status.acknowledgment == 'seen "1"'


def test_acknowledged_message_still_decodes(sample_xml: str) -> None:
    result = decode(acknowledge(sample_xml).value.buffer)
    assert result.is_success
    assert result.value.detail.status.acknowledgment == "ack"


# ── apply_patch ─────────────────────────────────────────────────────


def test_patch_replaces_latitude_in_place(sample_xml: str) -> None:
    result = apply_patch(sample_xml, _lat(45.5))
    assert result.is_success
    assert result.value.buffer == sample_xml.replace(LAT, 'lat="45.5"')


def test_patch_is_idempotent(sample_xml: str) -> None:
    once = apply_patch(sample_xml, _lat(45.5), ack=True).value.buffer
    twice = apply_patch(once, _lat(45.5), ack=True)
    assert twice.kind is ErrorKind.NO_MODIFICATION_MADE
    assert twice.value.buffer == once


def test_patch_with_ack_edits_both(sample_xml: str) -> None:
    result = apply_patch(sample_xml, _lat(-12.25), ack=True)
    expected = sample_xml.replace(LAT, 'lat="-12.25"').replace(STATUS, ACKED_STATUS)
    assert result.value.buffer == expected


def test_numerically_equal_latitude_is_no_op() -> None:
    xml = make_event_xml(point='<point lat="45.50" lon="1" hae="0" ce="1" le="1"/>')
    result = apply_patch(xml, _lat(45.5))
    assert result.kind is ErrorKind.NO_MODIFICATION_MADE
    assert not result.value.changed


def test_unset_latitude_is_no_op(sample_xml: str) -> None:
    result = apply_patch(sample_xml, _lat(None))
    assert result.kind is ErrorKind.NO_MODIFICATION_MADE
    assert result.value.buffer == sample_xml


def test_nan_latitude_is_no_op(sample_xml: str) -> None:
    result = apply_patch(sample_xml, _lat(float("nan")))
    assert result.kind is ErrorKind.NO_MODIFICATION_MADE
    assert result.value.buffer == sample_xml


def test_patch_appends_missing_latitude() -> None:
    xml = make_event_xml(point='<point lon="2" hae="0" ce="1" le="1" />')
    result = apply_patch(xml, _lat(7.0))
    assert '<point lon="2" hae="0" ce="1" le="1" lat="7" />' in result.value.buffer


def test_patch_preserves_unrelated_text() -> None:
    xml = (
        DECLARATION
        + "<!-- relay 4 -->\n<event version='2.0'  uid='x'>\n"
        "  <point lat='1.0'\tlon='2.0' hae='0' ce='1' le='1'/>\n"
        "  <detail><unknown a='b'>keep me</unknown></detail>\n</event>\n"
    )
    result = apply_patch(xml, _lat(3.25))
    assert result.value.buffer == xml.replace("lat='1.0'", "lat='3.25'")


def test_patch_errors() -> None:
    assert apply_patch("<event/>", _lat(1.0)).kind is ErrorKind.INVALID_XML
    broken = apply_patch(DECLARATION + "<event><point></event>", _lat(1.0))
    assert broken.kind is ErrorKind.PROCESSING_ERROR
    assert broken.value is None
