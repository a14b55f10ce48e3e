# ABOUTME: Flat XML event stream (start tag, text, end tag) built on lxml's parser-target API.
# ABOUTME: Both container.xml and the OPF package document are scanned from these events.

from dataclasses import dataclass, field, replace

from lxml import etree

UTF8_BOM = b"\xef\xbb\xbf"


class XmlEventError(Exception):
    """Raised when a document is not well-formed XML."""


@dataclass(frozen=True)
class StartTag:
    """An element start. Names and attribute keys are local (namespace stripped).

    ``empty`` is set when the element turned out to have no text or children,
    i.e. it was written as ``<x/>`` or ``<x></x>``.
    """

    name: str
    attrs: dict[str, str] = field(default_factory=dict)
    empty: bool = False


@dataclass(frozen=True)
class Text:
    """A non-blank run of character data, stripped."""

    value: str


@dataclass(frozen=True)
class EndTag:
    name: str


XmlEvent = StartTag | Text | EndTag


def local_name(name: str) -> str:
    """Drop the ``{namespace}`` part of an lxml Clark-notation name."""
    return name.rpartition("}")[2]


class _EventCollector:
    """lxml parser target that records events in document order.

    Character data arrives in arbitrary chunks; adjacent chunks are joined
    into a single Text event and blank runs are dropped.
    """

    def __init__(self) -> None:
        self.events: list[XmlEvent] = []
        self._chunks: list[str] = []
        self._open: list[int] = []

    def _flush_text(self) -> None:
        if not self._chunks:
            return
        value = "".join(self._chunks).strip()
        self._chunks.clear()
        if value:
            self.events.append(Text(value))

    def start(self, tag: str, attrib: dict[str, str]) -> None:
        self._flush_text()
        attrs = {local_name(key): value for key, value in attrib.items()}
        self._open.append(len(self.events))
        self.events.append(StartTag(local_name(tag), attrs))

    def data(self, data: str) -> None:
        self._chunks.append(data)

    def end(self, tag: str) -> None:
        self._flush_text()
        index = self._open.pop()
        if index == len(self.events) - 1:
            self.events[index] = replace(self.events[index], empty=True)
        self.events.append(EndTag(local_name(tag)))

    def close(self) -> list[XmlEvent]:
        self._flush_text()
        return self.events


def strip_bom(data: bytes) -> bytes:
    """Remove a leading UTF-8 byte-order mark, which some producers emit."""
    if data.startswith(UTF8_BOM):
        return data[len(UTF8_BOM):]
    return data


def read_xml_events(data: bytes) -> list[XmlEvent]:
    """Parse raw XML bytes into a flat list of events.

    Args:
        data: The document bytes. A leading UTF-8 BOM is ignored.

    Returns:
        StartTag, Text and EndTag events in document order.

    Raises:
        XmlEventError: If the bytes are not well-formed XML.
    """
    parser = etree.XMLParser(
        target=_EventCollector(),
        resolve_entities=False,
        no_network=True,
    )
    try:
        return etree.fromstring(strip_bom(data), parser)
    except (etree.LxmlError, ValueError) as exc:
        raise XmlEventError(str(exc)) from exc
