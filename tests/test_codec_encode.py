"""Tests for encode."""

from cot_codec.codec import decode, encode
from cot_codec.details import Detail, Link, Status, Track
from cot_codec.errors import ErrorKind
from cot_codec.models import Event, GeoPoint, Message
from cot_codec.timestamp import Timestamp

from conftest import DECLARATION, make_event_xml


def _built_message() -> Message:
    return Message(
        event=Event.create("unit-9", "a-h-A", "m-g", time=Timestamp(2023, 7, 4, 9, 30, 15.5)),
        point=GeoPoint(48.85, 2.35, 35.0, 12.5, 9999999.0),
        detail=Detail(
            status=Status(battery=87.0),
            track=Track(course=270.0, speed=220.4, slope=-3.5),
            links=[Link.at("wp-1", "b-m-p-w", 48.9, 2.4, relation="c")],
            remarks="inbound",
        ),
    )


def test_encode_header_and_event_attribute_order(sample_xml: str) -> None:
    result = encode(decode(sample_xml).value)
    assert result.is_success, str(result)
    text = result.value
    assert text.startswith(DECLARATION)
    assert (
        '<event version="2.0" uid="S-1-5-21-2515255310-331139352-785488330-3297"'
        ' type="a-f-G-E-V-A" time="2022-12-22T18:06:59.36Z"'
        ' start="2022-12-22T18:06:59.36Z" stale="2022-12-22T18:08:14.36Z" how="h-e">'
    ) in text
    assert (
        '<point lat="31.5990919461411" lon="-81.7768698985248"'
        ' hae="9999999" ce="9999999" le="9999999" />'
    ) in text


def test_decoded_message_round_trips(sample_xml: str, route_xml: str) -> None:
    for xml in (sample_xml, route_xml):
        message = decode(xml).value
        assert decode(encode(message).value).value == message


def test_built_message_round_trips() -> None:
    message = _built_message()
    encoded = encode(message)
    assert encoded.is_success, str(encoded)
    decoded = decode(encoded.value)
    assert decoded.is_success, str(decoded)
    assert decoded.value == message


def test_only_set_fields_are_emitted() -> None:
    message = _built_message()
    message.detail.track = Track(course=10.0, speed=1.0)
    text = encode(message).value
    assert '<track course="10" speed="1" />' in text
    assert "eCourse" not in text
    assert "acknowledgment" not in text
    assert "<takv" not in text


def test_duplicate_uid_collapses(sample_xml: str) -> None:
    text = encode(decode(sample_xml).value).value
    assert text.count("<uid ") == 1
    assert 'Droid="ASEIRS"' in text


def test_invalid_message_is_refused() -> None:
    message = _built_message()
    message.detail.status = Status(battery=150.0)
    result = encode(message)
    assert result.kind is ErrorKind.INVALID_SCHEMA
    assert "battery" in result.description
    assert result.value is None


def test_empty_message_is_refused() -> None:
    assert encode(Message()).kind is ErrorKind.INVALID_SCHEMA


def test_pretty_output_is_indented() -> None:
    text = encode(_built_message(), pretty=True).value
    assert text.startswith(DECLARATION + "\n<event")
    assert "\n  <point " in text
    assert "\n    <track " in text
    assert decode(text).value == _built_message()


def test_special_characters_are_escaped() -> None:
    message = _built_message()
    message.event.uid = 'a<b>&"c"'
    message.detail.remarks = "x < y & z"
    result = encode(message)
    assert result.is_success
    decoded = decode(result.value).value
    assert decoded.event.uid == 'a<b>&"c"'
    assert decoded.detail.remarks == "x < y & z"


def test_custom_element_text_survives_encode() -> None:
    custom = '<__routeinfo> lead <__navcues/> trail </__routeinfo>'
    result = encode(decode(make_event_xml(detail=f"<detail>{custom}</detail>")).value)
    assert result.is_success
    assert custom.replace("<__navcues/>", "<__navcues />") in result.value


def test_time_just_under_a_minute_still_decodes() -> None:
    message = _built_message()
    message.event.time = Timestamp(2023, 7, 4, 9, 30, 59.99999999)
    result = encode(message)
    assert 'time="2023-07-04T09:30:59.99Z"' in result.value
    assert decode(result.value).is_success
