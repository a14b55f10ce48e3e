# ABOUTME: Single-pass parser for EPUB package documents (OPF), EPUB 2 and EPUB 3 dialects.
# ABOUTME: Resolves contributors, roles, sort keys, genre and series from a flat XML event stream.

import enum
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from metamend.formats.errors import MalformedPackage
from metamend.formats.xml_events import (
    EndTag,
    StartTag,
    Text,
    XmlEvent,
    XmlEventError,
    read_xml_events,
)
from metamend.metadata.types import Author, ExtractedMetadata, Series

logger = logging.getLogger(__name__)

AUTHOR_ROLE = "aut"

# MARC relator codes seen on dc:creator in the wild. Anything else in an
# EPUB 2 opf:role attribute is treated as unrecognised.
MARC_RELATORS: frozenset[str] = frozenset(
    {
        "adp", "ann", "arr", "art", "asn", "aut", "aqt", "aft", "aui", "ant",
        "bkp", "clb", "cmm", "com", "cov", "cre", "ctb", "dsr", "edc", "edt",
        "ill", "lyr", "mdc", "mus", "nrt", "oth", "pbl", "pht", "prt", "red",
        "rev", "spn", "ths", "trc", "trl",
    }
)


class Dialect(enum.Enum):
    """Package document generation, fixed once at the root element."""

    LEGACY = "2"
    CURRENT = "3"


class Capture(enum.Enum):
    """What the next text node means."""

    CREATOR_NAME = enum.auto()
    FILE_AS = enum.auto()
    ROLE = enum.auto()
    GENRE = enum.auto()
    SERIES_NAME = enum.auto()
    SERIES_INDEX = enum.auto()


@dataclass
class Contributor:
    name: str = ""
    sort_key: str = ""
    role: str = ""


@dataclass
class PendingCapture:
    """A capture armed by a start tag and waiting for that element's text."""

    what: Capture
    element: str
    key: str = ""


@dataclass
class ParserState:
    """Everything accumulated during one forward scan of a package document.

    ``contributors`` is keyed by contributor key ("#id" in EPUB 3, a
    positional key otherwise). ``order`` holds the keys of creator elements
    in the order they were first seen; refinements for a key that no creator
    has declared yet live only in ``contributors``. ``positions`` holds the
    first group-position seen per refines target.
    """

    dialect: Dialect = Dialect.LEGACY
    package_seen: bool = False
    creator_count: int = 0
    contributors: dict[str, Contributor] = field(default_factory=dict)
    order: list[str] = field(default_factory=list)
    pending: PendingCapture | None = None
    genre: str = ""
    series_name: str = ""
    series_index: int | None = None
    collection_key: str | None = None
    positions: dict[str, int] = field(default_factory=dict)

    def contributor(self, key: str) -> Contributor:
        return self.contributors.setdefault(key, Contributor())


def parse_series_index(text: str) -> int:
    """Parse a series position, truncating fractional values toward zero.

    Some producers write positions like "2.5". Unparsable input yields 0.
    """
    text = text.strip()
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return int(float(text))
    except (ValueError, OverflowError):
        return 0


def _suffixed_attr(attrs: dict[str, str], suffix: str) -> str | None:
    """Value of the first attribute whose name ends with suffix, if any."""
    for key, value in attrs.items():
        if key.endswith(suffix):
            return value.strip()
    return None


def _legacy_role(role: str | None, file_as: str | None) -> str:
    """Resolve an EPUB 2 creator's role from its opf:role / opf:file-as attributes.

    Minimal EPUB 2 documents never annotate roles, so a creator without a
    role attribute counts as an author.
    """
    if role is None:
        return AUTHOR_ROLE
    if role in MARC_RELATORS:
        return role
    if file_as is not None:
        return AUTHOR_ROLE
    return role


def _start_package(state: ParserState, event: StartTag) -> None:
    if state.package_seen:
        return
    state.package_seen = True
    version = event.attrs.get("version", "").strip()
    state.dialect = Dialect.CURRENT if version.startswith("3") else Dialect.LEGACY
    logger.debug("Package version %r, dialect %s", version, state.dialect.name)


def _start_creator(state: ParserState, event: StartTag) -> None:
    state.creator_count += 1
    element_id = event.attrs.get("id", "").strip()
    if state.dialect is Dialect.CURRENT and element_id:
        key = "#" + element_id
    else:
        key = f"creator-{state.creator_count}"

    contributor = state.contributor(key)
    if key not in state.order:
        state.order.append(key)

    file_as = _suffixed_attr(event.attrs, "file-as")
    role = _suffixed_attr(event.attrs, "role")
    if state.dialect is Dialect.LEGACY:
        contributor.sort_key = file_as or ""
        contributor.role = _legacy_role(role, file_as)
    else:
        # EPUB 2 style attributes inside an EPUB 3 package; refinements win.
        if file_as and not contributor.sort_key:
            contributor.sort_key = file_as
        if role and not contributor.role:
            contributor.role = role

    state.pending = PendingCapture(Capture.CREATOR_NAME, event.name, key)


def _start_current_meta(state: ParserState, event: StartTag) -> None:
    prop = event.attrs.get("property", "").strip()
    refines = event.attrs.get("refines", "").strip()

    if prop.endswith("belongs-to-collection"):
        if state.collection_key is None:
            element_id = event.attrs.get("id", "").strip()
            state.collection_key = "#" + element_id if element_id else ""
            state.pending = PendingCapture(Capture.SERIES_NAME, event.name)
    elif prop.endswith("group-position"):
        state.pending = PendingCapture(Capture.SERIES_INDEX, event.name, refines)
    elif refines and prop.endswith("file-as"):
        state.pending = PendingCapture(Capture.FILE_AS, event.name, refines)
    elif refines and prop.endswith("role"):
        state.pending = PendingCapture(Capture.ROLE, event.name, refines)


def _start_legacy_meta(state: ParserState, event: StartTag) -> None:
    if not event.empty:
        return
    name = event.attrs.get("name", "")
    content = event.attrs.get("content", "")
    if name.endswith("series_index"):
        if state.series_index is None:
            state.series_index = parse_series_index(content)
    elif name.endswith("series"):
        if not state.series_name:
            state.series_name = content.strip()


def _on_start(state: ParserState, event: StartTag) -> None:
    if event.name == "package":
        _start_package(state, event)
    elif event.name == "creator":
        _start_creator(state, event)
    elif event.name == "meta":
        if state.dialect is Dialect.CURRENT:
            _start_current_meta(state, event)
        else:
            _start_legacy_meta(state, event)
    elif event.name == "subject":
        state.pending = PendingCapture(Capture.GENRE, event.name)


def _on_text(state: ParserState, value: str) -> None:
    pending = state.pending
    if pending is None:
        return
    state.pending = None

    if pending.what is Capture.CREATOR_NAME:
        state.contributor(pending.key).name = value
    elif pending.what is Capture.FILE_AS:
        state.contributor(pending.key).sort_key = value
    elif pending.what is Capture.ROLE:
        state.contributor(pending.key).role = value
    elif pending.what is Capture.GENRE:
        if not state.genre:
            state.genre = value
    elif pending.what is Capture.SERIES_NAME:
        state.series_name = value
    elif pending.what is Capture.SERIES_INDEX:
        state.positions.setdefault(pending.key, parse_series_index(value))


def _on_end(state: ParserState, event: EndTag) -> None:
    # An element that closed without text never captures a later element's text.
    if state.pending is not None and state.pending.element == event.name:
        state.pending = None


def _series_index(state: ParserState) -> int:
    """Position of the chosen series.

    EPUB 3 positions are keyed by their refines target (empty when they refine
    nothing) and resolved here, since a position may precede its collection.
    A legacy series_index meta wins when present.
    """
    if state.series_index is not None:
        return state.series_index
    if state.collection_key and state.collection_key in state.positions:
        return state.positions[state.collection_key]
    return state.positions.get("", 0)


def _build_metadata(state: ParserState) -> ExtractedMetadata:
    authors = []
    for key in state.order:
        contributor = state.contributors[key]
        if contributor.role == AUTHOR_ROLE and contributor.name:
            authors.append(Author(name=contributor.name, sort_key=contributor.sort_key))

    series = Series()
    if state.series_name:
        series = Series(name=state.series_name, index=_series_index(state))

    return ExtractedMetadata(authors=authors, genre=state.genre, series=series)


def parse_package_events(events: Iterable[XmlEvent]) -> ExtractedMetadata:
    """Scan package-document events once and build ExtractedMetadata.

    The dialect is decided by the root ``package`` element's version. EPUB 2
    creators carry their sort key and role as attributes; EPUB 3 creators are
    annotated by separate ``meta refines="#id"`` elements that may appear
    anywhere in the metadata block. Any capture still pending at the end of
    the stream is discarded.

    Args:
        events: StartTag / Text / EndTag events in document order.

    Returns:
        The authors (role "aut" only, document order), genre and series.
    """
    state = ParserState()
    for event in events:
        if isinstance(event, StartTag):
            _on_start(state, event)
        elif isinstance(event, Text):
            _on_text(state, event.value)
        elif isinstance(event, EndTag):
            _on_end(state, event)
    return _build_metadata(state)


def parse_package_document(data: bytes) -> ExtractedMetadata:
    """Parse the raw bytes of a package document.

    Raises:
        MalformedPackage: If the bytes are not well-formed XML.
    """
    try:
        events = read_xml_events(data)
    except XmlEventError as exc:
        raise MalformedPackage(f"Package document is not well-formed: {exc}") from exc
    return parse_package_events(events)
