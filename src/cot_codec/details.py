"""Typed sub-schemas for the children of ``<detail>``.

Each variant is a dataclass whose fields map one-to-one onto XML
attributes (the mapping lives in the field metadata).  A field left at
``None`` was absent on the wire and is not written back on encode; an
empty string is a present-but-empty attribute and *is* written back.

Registry::

    takv               → Takv
    contact            → Contact
    uid                → Uid              (attribute ``Droid``)
    precisionlocation  → PrecisionLocation
    __group            → Group
    status             → Status
    track              → Track
    strokeColor        → StrokeColor
    fillColor          → FillColor
    color              → Color
    usericon           → UserIcon
    model              → Model
    link               → Link             (repeatable)
    remarks            → Detail.remarks   (text content)
    anything else      → CustomElement
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, fields
from typing import ClassVar, Optional

from cot_codec.errors import ErrorKind, FieldNote
from cot_codec.xmltree import Node, XmlValueError

logger = logging.getLogger(__name__)

INT32_MIN = -(2 ** 31)
INT32_MAX = 2 ** 31 - 1


def _attr(name: str, kind: type = str, default=None):
    """Declare a dataclass field backed by XML attribute *name*."""
    return field(default=default, metadata={"xml": name, "kind": kind})


def format_number(value: float) -> str:
    """Shortest text that parses back to exactly *value*."""
    text = repr(float(value))
    return text[:-2] if text.endswith(".0") else text


class SubSchema:
    """Shared (de)serialization for attribute-only detail elements."""

    TAG: ClassVar[str] = ""

    @classmethod
    def from_node(cls, node: Node, notes: list[FieldNote]):
        values = {}
        for f in fields(cls):
            xml_name = f.metadata.get("xml")
            if xml_name is None:
                continue
            kind = f.metadata["kind"]
            try:
                if kind is float:
                    values[f.name] = node.as_double(xml_name)
                elif kind is int:
                    values[f.name] = node.as_int(xml_name)
                else:
                    values[f.name] = node.as_string(xml_name)
            except XmlValueError as exc:
                notes.append(
                    FieldNote(ErrorKind.INVALID_DETAIL, f"{cls.TAG}.{xml_name}", str(exc))
                )
                logger.debug("Ignoring <%s>: %s", cls.TAG, exc)
        return cls(**values)

    def to_node(self, parent: Node) -> Node:
        node = parent.append_child(self.TAG)
        for f in fields(self):
            xml_name = f.metadata.get("xml")
            value = getattr(self, f.name)
            if xml_name is None or value is None:
                continue
            if f.metadata["kind"] is float:
                node.set_attribute(xml_name, format_number(value))
            else:
                node.set_attribute(xml_name, str(value))
        return node

    def validate(self) -> Optional[str]:
        """Return a description of the first broken rule, or ``None``."""
        return None

    @property
    def is_valid(self) -> bool:
        return self.validate() is None


class _TextSchema(SubSchema):
    """Variants made only of text attributes; valid when any is non-empty."""

    def validate(self) -> Optional[str]:
        if any(getattr(self, f.name) for f in fields(self)):
            return None
        return f"{type(self).__name__} has no non-empty fields"


@dataclass
class Takv(_TextSchema):
    """Client software identity (``ATAK-CIV``, ``WinTAK-CIV``, ...)."""

    TAG: ClassVar[str] = "takv"

    version: Optional[str] = _attr("version")
    device: Optional[str] = _attr("device")
    os: Optional[str] = _attr("os")
    platform: Optional[str] = _attr("platform")


@dataclass
class Contact(_TextSchema):
    TAG: ClassVar[str] = "contact"

    endpoint: Optional[str] = _attr("endpoint")
    callsign: Optional[str] = _attr("callsign")
    xmpp_username: Optional[str] = _attr("xmppUsername")


@dataclass
class Uid(SubSchema):
    TAG: ClassVar[str] = "uid"

    droid: Optional[str] = _attr("Droid")

    def validate(self) -> Optional[str]:
        return None if self.droid else "Uid droid is empty"


@dataclass
class PrecisionLocation(_TextSchema):
    TAG: ClassVar[str] = "precisionlocation"

    altsrc: Optional[str] = _attr("altsrc")
    geopointsrc: Optional[str] = _attr("geopointsrc")


@dataclass
class Group(_TextSchema):
    """Team membership, e.g. ``name="Blue" role="HQ"``."""

    TAG: ClassVar[str] = "__group"

    role: Optional[str] = _attr("role")
    name: Optional[str] = _attr("name")


@dataclass
class Status(SubSchema):
    """Device status.

    ``acknowledgment`` is the attribute the acknowledge operation appends
    to a received message; a status carrying only an acknowledgment is
    valid without a battery reading.
    """

    TAG: ClassVar[str] = "status"

    battery: Optional[float] = _attr("battery", float)
    acknowledgment: Optional[str] = _attr("acknowledgment")

    def validate(self) -> Optional[str]:
        if self.battery is None:
            if self.acknowledgment:
                return None
            return "Status battery is unset"
        if math.isnan(self.battery) or not 0 <= self.battery <= 100:
            return "Status battery out of range (0-100)"
        return None


@dataclass
class Track(SubSchema):
    """Kinematics: course and speed are required, the rest optional.

    course   degrees from true north, 0..360
    speed    metres per second, >= 0
    slope    degrees, -90..90 (negative is downward)
    e_*      1-sigma errors, >= 0
    version  track schema version, > 0
    """

    TAG: ClassVar[str] = "track"

    course: Optional[float] = _attr("course", float)
    speed: Optional[float] = _attr("speed", float)
    slope: Optional[float] = _attr("slope", float)
    e_course: Optional[float] = _attr("eCourse", float)
    e_speed: Optional[float] = _attr("eSpeed", float)
    e_slope: Optional[float] = _attr("eSlope", float)
    version: Optional[float] = _attr("version", float)

    def validate(self) -> Optional[str]:
        if self.course is None:
            return "Course is unset"
        if not 0.0 <= self.course <= 360.0:
            return "Course out of range [0, 360]"
        if self.speed is None:
            return "Speed is unset"
        if not self.speed >= 0.0:
            return "Speed is negative"
        if self.slope is not None and not -90.0 <= self.slope <= 90.0:
            return "Slope out of range [-90, 90]"
        for name in ("e_course", "e_speed", "e_slope"):
            value = getattr(self, name)
            if value is not None and not value >= 0.0:
                return f"{name} is negative"
        if self.version is not None and not self.version > 0.0:
            return "Version is non-positive"
        return None


class _ColorSchema(SubSchema):
    """A single signed 32-bit ARGB value, held in the one mapped attribute."""

    def _argb(self) -> Optional[int]:
        (mapped,) = (f for f in fields(self) if "xml" in f.metadata)
        return getattr(self, mapped.name)

    def validate(self) -> Optional[str]:
        value = self._argb()
        if value is None:
            return f"{type(self).__name__} value is unset"
        if not INT32_MIN <= value <= INT32_MAX:
            return f"{type(self).__name__} value is not a signed 32-bit ARGB"
        return None


@dataclass
class StrokeColor(_ColorSchema):
    TAG: ClassVar[str] = "strokeColor"

    value: Optional[int] = _attr("value", int)


@dataclass
class FillColor(_ColorSchema):
    TAG: ClassVar[str] = "fillColor"

    value: Optional[int] = _attr("value", int)


@dataclass
class Color(_ColorSchema):
    TAG: ClassVar[str] = "color"

    argb: Optional[int] = _attr("argb", int)


@dataclass
class UserIcon(SubSchema):
    TAG: ClassVar[str] = "usericon"

    icon_set_path: Optional[str] = _attr("iconsetpath")

    def validate(self) -> Optional[str]:
        return None if self.icon_set_path else "iconsetpath is empty"


@dataclass
class Model(SubSchema):
    TAG: ClassVar[str] = "model"

    value: Optional[str] = _attr("value")

    def validate(self) -> Optional[str]:
        return None if self.value else "Model value is empty"


@dataclass
class Link(SubSchema):
    """A reference to another entity, e.g. a route waypoint.

    ``point`` is kept verbatim (``"34.911072,-85.754034"``); ``latitude``
    and ``longitude`` are derived from it.
    """

    TAG: ClassVar[str] = "link"

    uid: Optional[str] = _attr("uid")
    remarks: Optional[str] = _attr("remarks")
    relation: Optional[str] = _attr("relation")
    callsign: Optional[str] = _attr("callsign")
    type: Optional[str] = _attr("type")
    point: Optional[str] = _attr("point")

    @classmethod
    def at(cls, uid: str, type: str, latitude: float, longitude: float, **kwargs) -> "Link":
        point = f"{format_number(latitude)},{format_number(longitude)}"
        return cls(uid=uid, type=type, point=point, **kwargs)

    @property
    def coordinates(self) -> Optional[tuple[float, float]]:
        if not self.point or "," not in self.point:
            return None
        lat_text, _, lon_text = self.point.partition(",")
        try:
            return float(lat_text), float(lon_text)
        except ValueError:
            return None

    @property
    def latitude(self) -> Optional[float]:
        coords = self.coordinates
        return coords[0] if coords else None

    @property
    def longitude(self) -> Optional[float]:
        coords = self.coordinates
        return coords[1] if coords else None

    def validate(self) -> Optional[str]:
        if not self.uid:
            return "Link uid is empty"
        if not self.type:
            return "Link type is empty"
        if self.coordinates is None:
            return f"Link point {self.point!r} is not 'lat,lon'"
        return None


@dataclass
class CustomElement:
    """Any detail child the registry does not know, kept for re-encoding."""

    name: str = ""
    attributes: dict[str, str] = field(default_factory=dict)
    content: str = ""
    children: list["CustomElement"] = field(default_factory=list)
    tail: str = ""

    @classmethod
    def from_node(cls, node: Node) -> "CustomElement":
        return cls(
            name=node.name,
            attributes=node.attributes(),
            content=node.text,
            children=[cls.from_node(child) for child in node.children()],
            tail=node.tail,
        )

    def to_node(self, parent: Node) -> Node:
        node = parent.append_child(self.name, dict(self.attributes))
        if self.content:
            node.text = self.content
        for child in self.children:
            child.to_node(node)
        if self.tail:
            node.tail = self.tail
        return node

    def validate(self) -> Optional[str]:
        return None if self.name else "Custom element has no tag name"

    @property
    def is_valid(self) -> bool:
        return self.validate() is None

    def matches(self, name: str, attributes: Optional[dict[str, str]], content: str) -> bool:
        return (
            self.name == name
            and (not attributes or self.attributes == attributes)
            and (not content or self.content == content)
        )


_SINGLE_VARIANTS: dict[str, tuple[str, type]] = {
    Takv.TAG: ("takv", Takv),
    Contact.TAG: ("contact", Contact),
    Uid.TAG: ("uid", Uid),
    Model.TAG: ("model", Model),
    PrecisionLocation.TAG: ("precision_location", PrecisionLocation),
    Group.TAG: ("group", Group),
    Status.TAG: ("status", Status),
    Track.TAG: ("track", Track),
    StrokeColor.TAG: ("stroke_color", StrokeColor),
    FillColor.TAG: ("fill_color", FillColor),
    Color.TAG: ("color", Color),
    UserIcon.TAG: ("user_icon", UserIcon),
}

REMARKS_TAG = "remarks"


@dataclass
class Detail:
    """The ``<detail>`` bag: at most one of each named kind, any number of
    links and custom elements.  ``None`` means the element was absent.
    """

    takv: Optional[Takv] = None
    contact: Optional[Contact] = None
    uid: Optional[Uid] = None
    model: Optional[Model] = None
    precision_location: Optional[PrecisionLocation] = None
    group: Optional[Group] = None
    status: Optional[Status] = None
    track: Optional[Track] = None
    stroke_color: Optional[StrokeColor] = None
    fill_color: Optional[FillColor] = None
    color: Optional[Color] = None
    user_icon: Optional[UserIcon] = None
    remarks: Optional[str] = None
    links: list[Link] = field(default_factory=list)
    custom: list[CustomElement] = field(default_factory=list)

    # ── decode / encode ─────────────────────────────────────────────

    @classmethod
    def from_node(cls, node: Node, notes: list[FieldNote]) -> "Detail":
        detail = cls()
        for child in node.children():
            name = child.name
            if name in _SINGLE_VARIANTS:
                attr, variant = _SINGLE_VARIANTS[name]
                if getattr(detail, attr) is not None:
                    logger.debug("Repeated <%s> in detail; keeping the last one", name)
                setattr(detail, attr, variant.from_node(child, notes))
            elif name == Link.TAG:
                detail.links.append(Link.from_node(child, notes))
            elif name == REMARKS_TAG:
                detail.remarks = child.text
            else:
                detail.custom.append(CustomElement.from_node(child))
        return detail

    def to_node(self, parent: Node) -> Node:
        node = parent.append_child("detail")
        for attr, _ in _SINGLE_VARIANTS.values():
            element = getattr(self, attr)
            if element is not None:
                element.to_node(node)
        if self.remarks is not None:
            remarks = node.append_child(REMARKS_TAG)
            if self.remarks:
                remarks.text = self.remarks
        for link in self.links:
            link.to_node(node)
        for custom in self.custom:
            custom.to_node(node)
        return node

    # ── validation ──────────────────────────────────────────────────

    def present_elements(self) -> list:
        present = [
            getattr(self, attr) for attr, _ in _SINGLE_VARIANTS.values()
            if getattr(self, attr) is not None
        ]
        return present + list(self.links) + list(self.custom)

    def validation_errors(self) -> list[str]:
        errors = []
        for element in self.present_elements():
            error = element.validate()
            if error:
                tag = element.TAG if isinstance(element, SubSchema) else element.name
                errors.append(f"<{tag}>: {error}")
        return errors

    def validate(self) -> Optional[str]:
        errors = self.validation_errors()
        return errors[0] if errors else None

    @property
    def is_valid(self) -> bool:
        return not self.validation_errors()

    # ── custom elements ─────────────────────────────────────────────

    def add_custom(
        self,
        name: str,
        attributes: Optional[dict[str, str]] = None,
        content: str = "",
    ) -> bool:
        """Append a custom element; refuses empty or already-used names."""
        if not name or any(c.name == name for c in self.custom):
            return False
        self.custom.append(CustomElement(name, dict(attributes or {}), content))
        return True

    def modify_custom(
        self,
        name: str,
        match_attributes: Optional[dict[str, str]],
        match_content: str,
        attributes: dict[str, str],
        content: str,
    ) -> bool:
        """Replace attributes and content of the first matching element.

        Empty match criteria match anything with the right *name*.
        """
        if not name:
            return False
        for custom in self.custom:
            if custom.matches(name, match_attributes, match_content):
                custom.attributes = dict(attributes)
                custom.content = content
                return True
        return False

    def add_or_modify_custom(
        self,
        name: str,
        attributes: dict[str, str],
        content: str = "",
        match_attributes: Optional[dict[str, str]] = None,
        match_content: str = "",
    ) -> bool:
        if self.modify_custom(name, match_attributes, match_content, attributes, content):
            return True
        return self.add_custom(name, attributes, content)

    def remove_custom(
        self,
        name: str,
        attributes: Optional[dict[str, str]] = None,
        content: str = "",
    ) -> bool:
        if not name:
            return False
        for index, custom in enumerate(self.custom):
            if custom.matches(name, attributes, content):
                del self.custom[index]
                return True
        return False
