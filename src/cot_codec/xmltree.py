"""Thin adapter over the standard-library XML parser.

The codec never tokenizes XML itself.  It talks to this module, which
exposes a small tree interface (``parse`` → :class:`Tree` of :class:`Node`)
on top of :mod:`xml.etree.ElementTree`, plus :func:`element_spans` which
asks :mod:`xml.parsers.expat` where start tags sit in the source so that
callers can edit attributes without re-serializing the whole document.

Every call builds and owns its own tree; nothing is cached between calls.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Iterator, Optional, Union
from xml.parsers import expat

XML_DECLARATION = '<?xml version="1.0" encoding="utf-8" standalone="yes"?>'


class XmlValueError(ValueError):
    """An attribute exists but its text does not convert to the asked type."""

    def __init__(self, name: str, text: str, expected: str) -> None:
        super().__init__(f"attribute {name}={text!r} is not a valid {expected}")
        self.name = name
        self.text = text


@dataclass(frozen=True)
class ParseError:
    """Structured failure from :func:`parse`."""

    description: str
    offset: int = -1

    def __str__(self) -> str:
        if self.offset >= 0:
            return f"{self.description} (offset {self.offset})"
        return self.description


class Node:
    """Read/write view over a single element."""

    def __init__(self, element: ET.Element) -> None:
        self._element = element

    @property
    def name(self) -> str:
        return self._element.tag

    @property
    def element(self) -> ET.Element:
        return self._element

    @property
    def text(self) -> str:
        return self._element.text or ""

    @text.setter
    def text(self, value: str) -> None:
        self._element.text = value

    @property
    def tail(self) -> str:
        """Text between this element's end tag and the next sibling."""
        return self._element.tail or ""

    @tail.setter
    def tail(self, value: str) -> None:
        self._element.tail = value

    def child(self, name: str) -> Optional["Node"]:
        found = self._element.find(name)
        return Node(found) if found is not None else None

    def children(self, name: Optional[str] = None) -> list["Node"]:
        """Direct children, optionally restricted to tag *name*, in order."""
        return [
            Node(el) for el in self._element
            if isinstance(el.tag, str) and (name is None or el.tag == name)
        ]

    def attributes(self) -> dict[str, str]:
        return dict(self._element.attrib)

    def attribute(self, name: str) -> Optional[str]:
        return self._element.get(name)

    def has_attribute(self, name: str) -> bool:
        return name in self._element.attrib

    def as_string(self, name: str) -> Optional[str]:
        return self.attribute(name)

    def as_double(self, name: str) -> Optional[float]:
        """Attribute as float; ``None`` when absent.

        Raises
        ------
        XmlValueError
            The attribute is present but is not a number.
        """
        text = self.attribute(name)
        if text is None:
            return None
        try:
            return float(text.strip())
        except ValueError:
            raise XmlValueError(name, text, "number") from None

    def as_int(self, name: str) -> Optional[int]:
        """Attribute as int; ``None`` when absent.

        Raises
        ------
        XmlValueError
            The attribute is present but is not an integer.
        """
        text = self.attribute(name)
        if text is None:
            return None
        try:
            return int(text.strip())
        except ValueError:
            raise XmlValueError(name, text, "integer") from None

    def set_attribute(self, name: str, value: str) -> None:
        self._element.set(name, value)

    def append_attribute(self, name: str, value: str) -> bool:
        """Add *name* only when absent; return whether anything was added."""
        if name in self._element.attrib:
            return False
        self._element.set(name, value)
        return True

    def append_child(self, name: str, attributes: Optional[dict[str, str]] = None) -> "Node":
        return Node(ET.SubElement(self._element, name, attributes or {}))


class Tree:
    """A parsed (or freshly built) document."""

    def __init__(self, root: ET.Element) -> None:
        self._root = root

    @classmethod
    def new(cls, root_name: str, attributes: Optional[dict[str, str]] = None) -> "Tree":
        return cls(ET.Element(root_name, attributes or {}))

    @property
    def root(self) -> Node:
        return Node(self._root)

    def child(self, name: str) -> Optional[Node]:
        """The document element when it is called *name*."""
        return self.root if self._root.tag == name else None

    def serialize(self, declaration: bool = True, pretty: bool = False) -> str:
        root = self._root
        if pretty:
            root = ET.fromstring(ET.tostring(root, encoding="unicode"))
            ET.indent(root)
        body = ET.tostring(root, encoding="unicode", short_empty_elements=True)
        if not declaration:
            return body
        return XML_DECLARATION + ("\n" if pretty else "") + body


def parse(text: Union[str, bytes]) -> Union[Tree, ParseError]:
    """Parse *text* into a :class:`Tree` or describe why it failed."""
    try:
        root = ET.fromstring(text)
    except ET.ParseError as exc:
        return ParseError(description=str(exc), offset=_offset(text, exc.position))
    return Tree(root)


def _offset(text: Union[str, bytes], position: tuple[int, int]) -> int:
    line, column = position
    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="replace")
    lines = text.splitlines(keepends=True)
    return sum(len(chunk) for chunk in lines[: max(line - 1, 0)]) + column


@dataclass(frozen=True)
class ElementSpan:
    """Byte range of one start tag inside a UTF-8 encoded document."""

    name: str
    start: int
    end: int
    attributes: dict


def element_spans(data: bytes, names: set[str]) -> Union[list[ElementSpan], ParseError]:
    """Locate the start tags of every element in *names*, in document order.

    *data* must be UTF-8.  ``end`` points just past the closing ``>`` (or
    ``/>``) of the start tag.
    """
    parser = expat.ParserCreate("utf-8")
    spans: list[ElementSpan] = []

    def _start(name: str, attrs: dict) -> None:
        if name in names:
            start = parser.CurrentByteIndex
            spans.append(
                ElementSpan(name=name, start=start, end=_tag_end(data, start), attributes=attrs)
            )

    parser.StartElementHandler = _start
    try:
        parser.Parse(data, True)
    except expat.ExpatError as exc:
        return ParseError(
            description=expat.ErrorString(exc.code),
            offset=_offset(data, (exc.lineno, exc.offset)),
        )
    return spans


def _tag_end(data: bytes, start: int) -> int:
    quote: Optional[int] = None
    for index in range(start, len(data)):
        byte = data[index]
        if quote is not None:
            if byte == quote:
                quote = None
        elif byte in (0x22, 0x27):  # " or '
            quote = byte
        elif byte == 0x3E:  # >
            return index + 1
    return len(data)


def iter_attribute_spans(tag: bytes) -> Iterator[tuple[bytes, int, int]]:
    """Yield ``(name, value_start, value_end)`` for each attribute in *tag*.

    Offsets are relative to *tag* and bracket the value without its quotes.
    """
    index = 1
    length = len(tag)
    # skip the element name
    while index < length and tag[index:index + 1] not in (b" ", b"\t", b"\r", b"\n", b"/", b">"):
        index += 1
    while index < length:
        while index < length and tag[index:index + 1].isspace():
            index += 1
        if index >= length or tag[index:index + 1] in (b"/", b">"):
            return
        name_start = index
        while index < length and tag[index:index + 1] not in (b"=", b" ", b"\t", b"\r", b"\n"):
            index += 1
        name = tag[name_start:index]
        while index < length and tag[index:index + 1] != b"=":
            index += 1
        index += 1
        while index < length and tag[index:index + 1].isspace():
            index += 1
        quote = tag[index:index + 1]
        value_start = index + 1
        value_end = tag.find(quote, value_start)
        if value_end < 0:
            return
        yield name, value_start, value_end
        index = value_end + 1
