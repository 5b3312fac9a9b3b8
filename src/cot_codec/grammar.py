"""Decoders for the ``type`` and ``how`` mini-grammars.

``type`` is a dash-separated hierarchy whose first three tokens carry the
root kind, the affiliation indicator and the battle-space domain::

    a-f-G-E-V-A   →  atom, Friend, Ground  (remaining tokens ignored)

``how`` is a two-level code: entry kind, then a data kind whose vocabulary
depends on the entry kind::

    h-e  →  Human, Estimated
    m-g  →  Machine, Derived From GPS

Every enum member carries its wire code and display label, so there is no
side table that could miss a member.  Unknown tokens resolve to the
``ERROR`` member of the relevant enum.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from cot_codec.errors import ErrorKind, Result

# The only root kind the codec understands.
SUPPORTED_ROOT = "a"


class Indicator(enum.Enum):
    """Affiliation decoded from the second ``type`` token."""

    PENDING = ("p", "Pending")
    UNKNOWN = ("u", "Unknown")
    ASSUMED_FRIEND = ("a", "Assumed Friend")
    FRIEND = ("f", "Friend")
    NEUTRAL = ("n", "Neutral")
    SUSPECT = ("s", "Suspect")
    HOSTILE = ("h", "Hostile")
    JOKER = ("j", "Joker")
    FAKER = ("k", "Faker")
    NONE_SPECIFIED = ("o", "None Specified")
    OTHER = ("x", "Other")
    ERROR = ("", "Error")

    def __init__(self, code: str, label: str) -> None:
        self.code = code
        self.label = label

    @classmethod
    def from_code(cls, code: str) -> "Indicator":
        for member in cls:
            if code and member.code == code:
                return member
        return cls.ERROR


class Domain(enum.Enum):
    """Battle-space dimension decoded from the third ``type`` token."""

    SPACE = ("P", "Space")
    AIR = ("A", "Air")
    GROUND = ("G", "Ground")
    SEA_SURFACE = ("S", "Sea Surface")
    SEA_SUBSURFACE = ("U", "Sea Subsurface")
    OTHER = ("X", "Other")
    ERROR = ("", "Error")

    def __init__(self, code: str, label: str) -> None:
        self.code = code
        self.label = label

    @classmethod
    def from_code(cls, code: str) -> "Domain":
        for member in cls:
            if code and member.code == code:
                return member
        return cls.ERROR


class EntryKind(enum.Enum):
    """Whether a human or a machine produced the point."""

    HUMAN = ("h", "Human")
    MACHINE = ("m", "Machine")
    ERROR = ("", "Error")

    def __init__(self, code: str, label: str) -> None:
        self.code = code
        self.label = label

    @classmethod
    def from_code(cls, code: str) -> "EntryKind":
        for member in cls:
            if code and member.code == code:
                return member
        return cls.ERROR


class DataKind(enum.Enum):
    """How the point data was obtained.

    Codes are only meaningful together with an :class:`EntryKind`: ``c``
    is *Calculated* for a human entry but *Configured* for a machine one.
    """

    ESTIMATED = (EntryKind.HUMAN, "e", "Estimated")
    CALCULATED = (EntryKind.HUMAN, "c", "Calculated")
    TRANSCRIBED = (EntryKind.HUMAN, "t", "Transcribed")
    CUT_AND_PASTE = (EntryKind.HUMAN, "p", "Cut and Paste")
    MENSURATED = (EntryKind.MACHINE, "i", "Mensurated")
    DERIVED_FROM_GPS = (EntryKind.MACHINE, "g", "Derived From GPS")
    MAGNETIC = (EntryKind.MACHINE, "m", "Magnetic")
    SIMULATED = (EntryKind.MACHINE, "s", "Simulated")
    FUSED = (EntryKind.MACHINE, "f", "Fused")
    CONFIGURED = (EntryKind.MACHINE, "c", "Configured")
    PREDICTED = (EntryKind.MACHINE, "p", "Predicted")
    RELAYED = (EntryKind.MACHINE, "r", "Relayed")
    ERROR = (EntryKind.ERROR, "", "Error")

    def __init__(self, entry: EntryKind, code: str, label: str) -> None:
        self.entry = entry
        self.code = code
        self.label = label

    @classmethod
    def from_code(cls, code: str, entry: EntryKind) -> "DataKind":
        if entry is EntryKind.ERROR:
            return cls.ERROR
        for member in cls:
            if code and member.entry is entry and member.code == code:
                return member
        return cls.ERROR


def _tokens(raw: str) -> list[str]:
    return ["".join(token.split()) for token in raw.split("-")]


def decode_type(raw: str) -> Result[tuple[Indicator, Domain]]:
    """Decode a ``type`` attribute into its indicator and domain.

    Returns
    -------
    Result
        ``SUCCESS`` with ``(Indicator, Domain)`` when both tokens resolve.
        ``INVALID_TYPE`` otherwise; the value is still attached, with
        ``ERROR`` members standing in for whatever did not resolve.
    """
    tokens = _tokens(raw or "")
    if len(tokens) < 3 or tokens[0] != SUPPORTED_ROOT:
        return Result.failure(
            ErrorKind.INVALID_TYPE,
            f"type {raw!r} must have at least three tokens and start with "
            f"{SUPPORTED_ROOT!r}",
            value=(Indicator.ERROR, Domain.ERROR),
        )

    indicator = Indicator.from_code(tokens[1])
    domain = Domain.from_code(tokens[2])
    if indicator is Indicator.ERROR or domain is Domain.ERROR:
        return Result.failure(
            ErrorKind.INVALID_TYPE,
            f"type {raw!r} has an unknown indicator or domain",
            value=(indicator, domain),
        )
    return Result.success((indicator, domain))


def decode_how(raw: str) -> Result[tuple[EntryKind, DataKind]]:
    """Decode a ``how`` attribute into its entry kind and data kind."""
    tokens = _tokens(raw or "")
    if len(tokens) < 2:
        return Result.failure(
            ErrorKind.INVALID_HOW,
            f"how {raw!r} must have at least two tokens",
            value=(EntryKind.ERROR, DataKind.ERROR),
        )

    entry = EntryKind.from_code(tokens[0])
    data = DataKind.from_code(tokens[1], entry)
    if entry is EntryKind.ERROR or data is DataKind.ERROR:
        return Result.failure(
            ErrorKind.INVALID_HOW,
            f"how {raw!r} has an unknown entry or data code",
            value=(entry, data),
        )
    return Result.success((entry, data))


@dataclass
class ClassificationCode:
    """The raw ``type`` string plus its decoded indicator and domain.

    ``raw`` is what gets written back on encode; the enums are a cache.
    """

    raw: str = ""
    indicator: Indicator = Indicator.ERROR
    domain: Domain = Domain.ERROR

    @classmethod
    def parse(cls, raw: str) -> "ClassificationCode":
        indicator, domain = decode_type(raw).value
        return cls(raw=raw, indicator=indicator, domain=domain)

    @property
    def is_valid(self) -> bool:
        return (
            bool(self.raw)
            and self.indicator is not Indicator.ERROR
            and self.domain is not Domain.ERROR
        )

    def describe(self) -> str:
        return f"{self.indicator.label} / {self.domain.label}"


@dataclass
class HowCode:
    """The raw ``how`` string plus its decoded entry and data kinds."""

    raw: str = ""
    entry: EntryKind = EntryKind.ERROR
    data: DataKind = DataKind.ERROR

    @classmethod
    def parse(cls, raw: str) -> "HowCode":
        entry, data = decode_how(raw).value
        return cls(raw=raw, entry=entry, data=data)

    @property
    def is_valid(self) -> bool:
        return (
            bool(self.raw)
            and self.entry is not EntryKind.ERROR
            and self.data is not DataKind.ERROR
        )

    def describe(self) -> str:
        return f"{self.entry.label} / {self.data.label}"
