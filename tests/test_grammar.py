"""Tests for the type/how mini-grammar decoders."""

import pytest

from cot_codec.errors import ErrorKind
from cot_codec.grammar import (
    ClassificationCode,
    DataKind,
    Domain,
    EntryKind,
    HowCode,
    Indicator,
    decode_how,
    decode_type,
)


def test_decode_type_friend_ground() -> None:
    """Only the first three tokens matter."""
    result = decode_type("a-f-G-E-V-A")
    assert result.is_success
    assert result.value == (Indicator.FRIEND, Domain.GROUND)


def test_decode_type_trims_token_whitespace() -> None:
    result = decode_type("a - h - A")
    assert result.value == (Indicator.HOSTILE, Domain.AIR)


@pytest.mark.parametrize("raw", ["", "a-f", "b-f-G", "f-G-a"])
def test_decode_type_rejects_bad_shape(raw: str) -> None:
    """Too few tokens or a root other than 'a' → InvalidType with ERROR members."""
    result = decode_type(raw)
    assert result.kind is ErrorKind.INVALID_TYPE
    assert result.value == (Indicator.ERROR, Domain.ERROR)


def test_decode_type_unknown_token_keeps_partial_value() -> None:
    result = decode_type("a-q-G")
    assert result.kind is ErrorKind.INVALID_TYPE
    assert result.value == (Indicator.ERROR, Domain.GROUND)


def test_decode_how_human_estimated() -> None:
    result = decode_how("h-e")
    assert result.is_success
    assert result.value == (EntryKind.HUMAN, DataKind.ESTIMATED)


def test_decode_how_machine_gps() -> None:
    assert decode_how("m-g").value == (EntryKind.MACHINE, DataKind.DERIVED_FROM_GPS)


def test_decode_how_vocabulary_depends_on_entry() -> None:
    """'c' means Calculated for humans and Configured for machines."""
    assert decode_how("h-c").value[1] is DataKind.CALCULATED
    assert decode_how("m-c").value[1] is DataKind.CONFIGURED


def test_decode_how_rejects_code_from_other_vocabulary() -> None:
    result = decode_how("h-g")
    assert result.kind is ErrorKind.INVALID_HOW
    assert result.value == (EntryKind.HUMAN, DataKind.ERROR)


def test_decode_how_needs_two_tokens() -> None:
    assert decode_how("h").kind is ErrorKind.INVALID_HOW


@pytest.mark.parametrize("enum_cls", [Indicator, Domain, EntryKind])
def test_every_member_resolves_from_its_code(enum_cls) -> None:
    for member in enum_cls:
        if member.name == "ERROR":
            assert enum_cls.from_code("") is member
            continue
        assert enum_cls.from_code(member.code) is member
        assert member.label


def test_every_data_kind_resolves_within_its_entry() -> None:
    for member in DataKind:
        if member is DataKind.ERROR:
            continue
        assert DataKind.from_code(member.code, member.entry) is member


def test_classification_code_describe() -> None:
    code = ClassificationCode.parse("a-f-G-E-V-A")
    assert code.is_valid
    assert code.raw == "a-f-G-E-V-A"
    assert code.describe() == "Friend / Ground"


def test_how_code_invalid_keeps_raw() -> None:
    how = HowCode.parse("x-y")
    assert not how.is_valid
    assert how.raw == "x-y"
    assert how.describe() == "Error / Error"
