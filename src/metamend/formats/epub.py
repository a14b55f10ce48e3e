# ABOUTME: EPUB archive access: locate the package document and extract its metadata.
# ABOUTME: Unreadable or malformed books surface as EpubReadError, or as "no metadata" in batch use.

import logging
import zipfile
import zlib
from pathlib import Path

from metamend.formats.errors import (
    ArchiveUnreadable,
    EpubReadError,
    MalformedContainer,
    MalformedPackage,
)
from metamend.formats.opf import parse_package_document
from metamend.formats.xml_events import StartTag, XmlEventError, read_xml_events
from metamend.metadata.types import ExtractedMetadata

logger = logging.getLogger(__name__)

CONTAINER_PATH = "META-INF/container.xml"

__all__ = [
    "CONTAINER_PATH",
    "ArchiveUnreadable",
    "EpubReadError",
    "MalformedContainer",
    "MalformedPackage",
    "extract_metadata",
    "locate_package_document",
    "read_epub_metadata",
]


def _read_entry(archive: zipfile.ZipFile, name: str) -> bytes:
    """Read one archive member, mapping every zip-level failure to ArchiveUnreadable."""
    try:
        return archive.read(name)
    except KeyError as exc:
        raise ArchiveUnreadable(f"Archive has no entry {name!r}") from exc
    except (
        zipfile.BadZipFile,
        zlib.error,
        EOFError,
        OSError,
        RuntimeError,
        NotImplementedError,
    ) as exc:
        raise ArchiveUnreadable(f"Cannot read entry {name!r}: {exc}") from exc


def locate_package_document(archive: zipfile.ZipFile) -> str:
    """Return the archive path of the package document named by container.xml.

    Args:
        archive: An open EPUB zip archive.

    Returns:
        The ``full-path`` of the first ``rootfile`` element.

    Raises:
        ArchiveUnreadable: If container.xml is missing or cannot be read.
        MalformedContainer: If container.xml is not well-formed or names no rootfile.
    """
    raw = _read_entry(archive, CONTAINER_PATH)
    try:
        events = read_xml_events(raw)
    except XmlEventError as exc:
        raise MalformedContainer(f"{CONTAINER_PATH} is not well-formed: {exc}") from exc

    for event in events:
        if isinstance(event, StartTag) and event.name == "rootfile":
            full_path = event.attrs.get("full-path", "").strip()
            if full_path:
                return full_path

    raise MalformedContainer(f"{CONTAINER_PATH} names no rootfile with a full-path")


def read_epub_metadata(path: Path | str) -> ExtractedMetadata:
    """Extract author, genre and series metadata from an EPUB file.

    Args:
        path: Path to the EPUB file.

    Returns:
        ExtractedMetadata parsed from the package document.

    Raises:
        EpubReadError: If the file cannot be opened or either XML document
            inside it is unusable.
    """
    path = Path(path)
    if not path.is_file():
        raise ArchiveUnreadable(f"File not found: {path}")

    try:
        with zipfile.ZipFile(path) as archive:
            package_path = locate_package_document(archive)
            data = _read_entry(archive, package_path)
    except (zipfile.BadZipFile, EOFError, OSError, ValueError) as exc:
        raise ArchiveUnreadable(f"Failed to open EPUB: {path}: {exc}") from exc

    return parse_package_document(data)


def extract_metadata(path: Path | str) -> ExtractedMetadata | None:
    """Like read_epub_metadata, but returns None for a book that cannot be read.

    One malformed book must not abort a pass over the whole library, so every
    EpubReadError is logged and absorbed here.
    """
    try:
        return read_epub_metadata(path)
    except EpubReadError as exc:
        logger.warning("Skipping %s: %s", path, exc)
        return None
