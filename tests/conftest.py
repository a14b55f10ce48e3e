# ABOUTME: Shared pytest fixtures for metamend tests.
# ABOUTME: Provides EPUB files (EPUB 2, EPUB 3, corrupt) and a scratch device library database.

import sqlite3
import struct
import zipfile
from collections.abc import Callable
from pathlib import Path

import pytest
from ebooklib import epub

from metamend.db.connection import open_device_library

CONTAINER_XML = """<?xml version="1.0" encoding="UTF-8"?>
<container version="1.0" xmlns="urn:oasis:names:tc:opendocument:xmlns:container">
  <rootfiles>
    <rootfile full-path="{opf_path}" media-type="application/oebps-package+xml"/>
  </rootfiles>
</container>
"""

LEGACY_OPF = """<?xml version="1.0" encoding="UTF-8"?>
<package xmlns="http://www.idpf.org/2007/opf" version="2.0" unique-identifier="uid">
  <metadata xmlns:dc="http://purl.org/dc/elements/1.1/" xmlns:opf="http://www.idpf.org/2007/opf">
    <dc:title>Good Omens</dc:title>
    <dc:creator opf:role="aut" opf:file-as="Pratchett, Terry">Terry Pratchett</dc:creator>
    <dc:creator opf:role="aut" opf:file-as="Gaiman, Neil">Neil Gaiman</dc:creator>
    <dc:creator opf:role="ill" opf:file-as="Kidby, Paul">Paul Kidby</dc:creator>
    <dc:subject>Fantasy</dc:subject>
    <dc:subject>Humour</dc:subject>
    <meta name="calibre:series" content="Standalone"/>
    <meta name="calibre:series_index" content="1.0"/>
  </metadata>
</package>
"""

CURRENT_OPF = """<?xml version="1.0" encoding="UTF-8"?>
<package xmlns="http://www.idpf.org/2007/opf" version="3.0" unique-identifier="uid">
  <metadata xmlns:dc="http://purl.org/dc/elements/1.1/">
    <dc:title>Some Novel</dc:title>
    <dc:creator id="c1">Jane Doe</dc:creator>
    <meta refines="#c1" property="file-as">Doe, Jane</meta>
    <meta refines="#c1" property="role" scheme="marc:relators">aut</meta>
    <dc:subject>Fiction</dc:subject>
  </metadata>
</package>
"""

EpubFactory = Callable[..., Path]


@pytest.fixture
def make_epub(tmp_path: Path) -> EpubFactory:
    """Factory that writes a zip-packaged EPUB around a given package document."""

    def _make(
        opf: str | bytes,
        *,
        name: str = "book.epub",
        opf_path: str = "OEBPS/content.opf",
        container: str | bytes | None = None,
    ) -> Path:
        filepath = tmp_path / name
        filepath.parent.mkdir(parents=True, exist_ok=True)
        if container is None:
            container = CONTAINER_XML.format(opf_path=opf_path)
        with zipfile.ZipFile(filepath, "w") as archive:
            archive.writestr("mimetype", "application/epub+zip", zipfile.ZIP_STORED)
            archive.writestr("META-INF/container.xml", container, zipfile.ZIP_DEFLATED)
            archive.writestr(opf_path, opf, zipfile.ZIP_DEFLATED)
        return filepath

    return _make


@pytest.fixture
def legacy_epub(make_epub: EpubFactory) -> Path:
    """An EPUB 2 book with two authors, an illustrator, genre and series."""
    return make_epub(LEGACY_OPF, name="good_omens.epub")


@pytest.fixture
def current_epub(make_epub: EpubFactory) -> Path:
    """An EPUB 3 book whose author is annotated through meta refines."""
    return make_epub(CURRENT_OPF, name="some_novel.epub")


@pytest.fixture
def sample_epub(tmp_path: Path) -> Path:
    """Create a minimal valid EPUB 3 file with ebooklib, as real producers do."""
    book = epub.EpubBook()

    book.set_identifier("test-isbn-978-0-123456-47-2")
    book.set_title("The Name of the Rose")
    book.set_language("en")
    book.add_author("Umberto Eco", file_as="Eco, Umberto", role="aut", uid="author1")
    book.add_author("William Weaver", file_as="Weaver, William", role="trl", uid="translator1")

    book.add_metadata("DC", "subject", "Historical mystery")

    # Add a minimal chapter so the EPUB is structurally valid
    chapter = epub.EpubHtml(title="Chapter 1", file_name="chap01.xhtml", lang="en")
    chapter.content = b"<html><body><h1>Chapter 1</h1><p>Content.</p></body></html>"
    book.add_item(chapter)

    # Add navigation
    book.toc = [epub.Link("chap01.xhtml", "Chapter 1", "chap01")]
    book.add_item(epub.EpubNcx())
    book.add_item(epub.EpubNav())
    book.spine = ["nav", chapter]

    filepath = tmp_path / "name_of_the_rose.epub"
    epub.write_epub(str(filepath), book)
    return filepath


@pytest.fixture
def truncated_epub(tmp_path: Path) -> Path:
    """A zip whose central directory claims more package-document bytes than exist."""
    filepath = tmp_path / "truncated.epub"
    with zipfile.ZipFile(filepath, "w", zipfile.ZIP_STORED) as archive:
        archive.writestr("mimetype", "application/epub+zip")
        archive.writestr("META-INF/container.xml", CONTAINER_XML.format(opf_path="c.opf"))
        archive.writestr("c.opf", CURRENT_OPF)

    data = bytearray(filepath.read_bytes())
    # Central directory header of the last entry (c.opf); sizes sit at offset 20.
    header = data.rfind(b"PK\x01\x02")
    data[header + 20:header + 28] = struct.pack("<II", len(data) * 4, len(data) * 4)
    filepath.write_bytes(bytes(data))
    return filepath


@pytest.fixture
def corrupt_epub(tmp_path: Path) -> Path:
    """Create a corrupt file that is not a valid EPUB."""
    filepath = tmp_path / "corrupt.epub"
    filepath.write_text("this is not a valid epub file")
    return filepath


@pytest.fixture
def device_db(tmp_path: Path) -> Path:
    """Path to a freshly created, empty device library database."""
    db_path = tmp_path / "system" / "explorer-3.db"
    conn = open_device_library(db_path, create=True)
    conn.close()
    return db_path


@pytest.fixture
def db_conn(device_db: Path):
    """Open connection to the scratch device library; closed after the test."""
    conn = open_device_library(device_db)
    yield conn
    conn.close()


def insert_book(
    conn: sqlite3.Connection,
    book_id: int,
    file_path: Path | str | None,
    *,
    author: str = "",
    firstauthor: str = "",
    first_author_letter: str = "",
    series: str = "",
    numinseries: int = 0,
    genre: str | None = None,
    ext: str = "epub",
    storage_id: int = 1,
) -> None:
    """Insert a book the way the device firmware lays it out across its tables."""
    conn.execute(
        "INSERT INTO books_impl "
        "(id, title, author, firstauthor, first_author_letter, series, numinseries, ext) "
        "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
        (book_id, f"Book {book_id}", author, firstauthor, first_author_letter,
         series, numinseries, ext),
    )
    if file_path is not None:
        folder, _, filename = str(file_path).rpartition("/")
        row = conn.execute("SELECT id FROM folders WHERE name = ?", (folder,)).fetchone()
        if row is None:
            folder_id = conn.execute(
                "INSERT INTO folders (storageid, name) VALUES (?, ?)", (storage_id, folder)
            ).lastrowid
        else:
            folder_id = row[0]
        conn.execute(
            "INSERT INTO files (storageid, folder_id, book_id, filename, ext) "
            "VALUES (?, ?, ?, ?, ?)",
            (storage_id, folder_id, book_id, filename, ext),
        )
    if genre is not None:
        conn.execute("INSERT OR IGNORE INTO genres (name) VALUES (?)", (genre,))
        conn.execute(
            "INSERT INTO booktogenre (bookid, genreid) "
            "SELECT ?, id FROM genres WHERE name = ?",
            (book_id, genre),
        )


@pytest.fixture
def add_book(db_conn: sqlite3.Connection) -> Callable[..., None]:
    """Insert books into the scratch device library (see insert_book)."""

    def _add(book_id: int, file_path: Path | str | None, **fields) -> None:
        insert_book(db_conn, book_id, file_path, **fields)

    return _add
