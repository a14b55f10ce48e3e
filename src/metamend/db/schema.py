# ABOUTME: Device library schema knowledge: table DDL and version-dependent capabilities.
# ABOUTME: The DDL mirrors the subset of explorer-3.db tables that metamend reads or writes.

import enum

# From this schema version on, file hashes live in books_fast_hashes
# instead of books_uids.
FAST_HASHES_SCHEMA_VERSION = 37

DEFAULT_SCHEMA_VERSION = FAST_HASHES_SCHEMA_VERSION

REQUIRED_TABLES: tuple[str, ...] = (
    "books_impl",
    "files",
    "folders",
    "genres",
    "booktogenre",
)


class SchemaCapability(enum.Enum):
    """Which identifier/hash table a given schema version provides."""

    BOOK_UIDS = "books_uids"
    FAST_HASHES = "books_fast_hashes"

    @property
    def hash_table(self) -> str:
        return self.value

    @classmethod
    def for_version(cls, version: int) -> "SchemaCapability":
        if version >= FAST_HASHES_SCHEMA_VERSION:
            return cls.FAST_HASHES
        return cls.BOOK_UIDS


DEVICE_SCHEMA = """
CREATE TABLE version (
    id INTEGER NOT NULL
);

CREATE TABLE folders (
    id        INTEGER PRIMARY KEY,
    storageid INTEGER,
    name      TEXT NOT NULL
);

CREATE TABLE books_impl (
    id                  INTEGER PRIMARY KEY,
    title               TEXT,
    first_title_letter  TEXT,
    author              TEXT,
    firstauthor         TEXT,
    first_author_letter TEXT,
    series              TEXT,
    numinseries         INTEGER NOT NULL DEFAULT 0,
    size                INTEGER,
    isbn                TEXT,
    sort_title          TEXT,
    updated             INTEGER,
    ts_added            INTEGER,
    hidden              INTEGER NOT NULL DEFAULT 0,
    ext                 TEXT
);

CREATE TABLE files (
    id                INTEGER PRIMARY KEY,
    storageid         INTEGER,
    folder_id         INTEGER NOT NULL REFERENCES folders(id),
    book_id           INTEGER NOT NULL REFERENCES books_impl(id),
    filename          TEXT NOT NULL,
    size              INTEGER,
    modification_time INTEGER,
    ext               TEXT
);

CREATE TABLE genres (
    id   INTEGER PRIMARY KEY,
    name TEXT NOT NULL UNIQUE
);

CREATE TABLE booktogenre (
    bookid  INTEGER NOT NULL REFERENCES books_impl(id),
    genreid INTEGER NOT NULL REFERENCES genres(id),
    PRIMARY KEY (bookid, genreid)
);

CREATE TABLE books_settings (
    bookid    INTEGER NOT NULL REFERENCES books_impl(id),
    profileid INTEGER,
    cpage     INTEGER,
    npage     INTEGER,
    completed INTEGER,
    opentime  INTEGER
);

CREATE TABLE books_uids (
    book_id INTEGER NOT NULL REFERENCES books_impl(id),
    type    INTEGER,
    uid     TEXT
);

CREATE TABLE books_fast_hashes (
    book_id INTEGER NOT NULL REFERENCES books_impl(id),
    format  INTEGER,
    hash    TEXT
);

CREATE TABLE bookshelfs_books (
    bookshelfid INTEGER,
    bookid      INTEGER NOT NULL REFERENCES books_impl(id),
    ts          INTEGER,
    is_deleted  INTEGER
);

CREATE TABLE social (
    bookid  INTEGER NOT NULL REFERENCES books_impl(id),
    type    INTEGER,
    ts      INTEGER,
    payload TEXT
);
"""
