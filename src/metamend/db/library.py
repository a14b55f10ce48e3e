# ABOUTME: Record source, update sink and ghost-book sweep over the device library database.
# ABOUTME: All writes of one fix pass happen inside a single all-or-nothing transaction.

import logging
import sqlite3
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any

from metamend.db.mapping import StoredBookRecord, row_to_record
from metamend.db.schema import SchemaCapability
from metamend.db.updates import (
    FieldUpdate,
    LinkGenre,
    ReplaceAuthor,
    ReplaceAuthorSort,
    ReplaceFirstLetter,
    SetSeries,
)

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_ID = 1
DEFAULT_EXTENSION = "epub"

_BOOKS_SELECT = """
SELECT books.id AS id,
       folders.name AS folder,
       files.filename AS filename,
       books.author AS author,
       books.firstauthor AS firstauthor,
       books.first_author_letter AS first_author_letter,
       books.series AS series,
       books.numinseries AS numinseries,
       (SELECT genres.name
          FROM booktogenre btg
          JOIN genres ON genres.id = btg.genreid
         WHERE btg.bookid = books.id
         ORDER BY genres.name
         LIMIT 1) AS genre
  FROM books_impl books
  JOIN files ON books.id = files.book_id
  JOIN folders ON folders.id = files.folder_id
"""

_BY_STORAGE = " WHERE files.storageid = ? AND books.ext = ? ORDER BY books.id"
_BY_ID = " WHERE books.id = ? LIMIT 1"

# (table, column) pairs that reference books_impl.id, besides the hash table.
_DEPENDENT_TABLES: tuple[tuple[str, str], ...] = (
    ("books_settings", "bookid"),
    ("bookshelfs_books", "bookid"),
    ("booktogenre", "bookid"),
    ("social", "bookid"),
)


class LibraryError(Exception):
    """Raised when the device library database cannot be read or updated."""


class DeviceLibrary:
    """Wraps a device library connection and provides the fix pass's store operations."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def _execute(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        try:
            return self._conn.execute(sql, params)
        except sqlite3.Error as exc:
            raise LibraryError(f"Database error: {exc}") from exc

    def _has_table(self, name: str) -> bool:
        cursor = self._execute(
            "SELECT 1 FROM sqlite_master WHERE type='table' AND name = ?", (name,)
        )
        return cursor.fetchone() is not None

    # --- Schema ---

    def schema_version(self) -> int:
        """Read the schema version marker, or 0 if the database has none."""
        if not self._has_table("version"):
            return 0
        row = self._execute("SELECT MAX(id) FROM version").fetchone()
        return row[0] if row and row[0] is not None else 0

    def schema_capability(self) -> SchemaCapability:
        return SchemaCapability.for_version(self.schema_version())

    # --- Record source ---

    def list_books(
        self,
        storage_id: int = DEFAULT_STORAGE_ID,
        extension: str = DEFAULT_EXTENSION,
    ) -> list[StoredBookRecord]:
        """Return the stored records of all books on one storage with one file extension.

        Args:
            storage_id: files.storageid to restrict to (1 is internal memory).
            extension: books_impl.ext value, e.g. "epub".

        Returns:
            StoredBookRecords ordered by book id.
        """
        cursor = self._execute(_BOOKS_SELECT + _BY_STORAGE, (storage_id, extension))
        return [row_to_record(row) for row in cursor.fetchall()]

    def get_book(self, book_id: int) -> StoredBookRecord | None:
        """Retrieve one stored record by book id, regardless of storage or extension."""
        cursor = self._execute(_BOOKS_SELECT + _BY_ID, (book_id,))
        row = cursor.fetchone()
        return row_to_record(row) if row else None

    # --- Update sink ---

    def apply(self, book_id: int, update: FieldUpdate) -> None:
        """Execute one field-update intent. Does not commit.

        Raises:
            LibraryError: If the statement fails.
            TypeError: If update is not a known intent.
        """
        if isinstance(update, ReplaceAuthorSort):
            self._execute(
                "UPDATE books_impl SET firstauthor = ? WHERE id = ?", (update.value, book_id)
            )
        elif isinstance(update, ReplaceFirstLetter):
            self._execute(
                "UPDATE books_impl SET first_author_letter = ? WHERE id = ?",
                (update.value, book_id),
            )
        elif isinstance(update, ReplaceAuthor):
            self._execute(
                "UPDATE books_impl SET author = ? WHERE id = ?", (update.value, book_id)
            )
        elif isinstance(update, LinkGenre):
            self.link_genre(book_id, update.genre)
        elif isinstance(update, SetSeries):
            self._execute(
                "UPDATE books_impl SET series = ?, numinseries = ? WHERE id = ?",
                (update.name, update.index, book_id),
            )
        else:
            raise TypeError(f"Unknown update intent: {update!r}")

    def link_genre(self, book_id: int, genre: str) -> None:
        """Link a genre to a book. Creates the genre if it doesn't exist. Idempotent."""
        self._execute(
            "INSERT INTO genres (name) SELECT ? "
            "WHERE NOT EXISTS (SELECT 1 FROM genres WHERE name = ?)",
            (genre, genre),
        )
        self._execute(
            "INSERT INTO booktogenre (bookid, genreid) "
            "SELECT ?, genres.id FROM genres WHERE genres.name = ? "
            "AND NOT EXISTS ("
            "  SELECT 1 FROM booktogenre WHERE bookid = ? AND genreid = genres.id"
            ")",
            (book_id, genre, book_id),
        )

    # --- Ghost sweep ---

    def remove_ghost_books(self, capability: SchemaCapability | None = None) -> int:
        """Delete books that have no file entry, plus every row referencing them.

        Must run inside ``transaction(suspend_foreign_keys=True)``: dependent
        rows are deleted after their book, which foreign-key enforcement
        would reject.

        Args:
            capability: Which hash table the schema has. Read from the
                database when omitted.

        Returns:
            The number of books removed.
        """
        capability = capability or self.schema_capability()
        cursor = self._execute(
            "SELECT books.id FROM books_impl books "
            "LEFT OUTER JOIN files ON books.id = files.book_id "
            "WHERE files.book_id IS NULL "
            "ORDER BY books.id"
        )
        ghost_ids = [(row[0],) for row in cursor.fetchall()]
        if not ghost_ids:
            return 0

        logger.info("Removing %d ghost book(s)", len(ghost_ids))
        self._executemany("DELETE FROM books_impl WHERE id = ?", ghost_ids)

        dependents = [(capability.hash_table, "book_id"), *_DEPENDENT_TABLES]
        for table, column in dependents:
            if not self._has_table(table):
                logger.debug("Table %s not present, skipping", table)
                continue
            self._executemany(f"DELETE FROM {table} WHERE {column} = ?", ghost_ids)

        return len(ghost_ids)

    def _executemany(self, sql: str, params: list[tuple[Any, ...]]) -> None:
        try:
            self._conn.executemany(sql, params)
        except sqlite3.Error as exc:
            raise LibraryError(f"Database error: {exc}") from exc

    # --- Transactions ---

    def foreign_keys_enabled(self) -> bool:
        return bool(self._execute("PRAGMA foreign_keys").fetchone()[0])

    @contextmanager
    def transaction(
        self, *, commit: bool = True, suspend_foreign_keys: bool = False
    ) -> Iterator["DeviceLibrary"]:
        """Run a block inside one transaction: commit on success, roll back on error.

        SQLite ignores ``PRAGMA foreign_keys`` inside a transaction, so when
        suspend_foreign_keys is set enforcement is switched off before BEGIN
        and restored after the transaction ends.

        Args:
            commit: Commit on success. False rolls back anyway (dry run).
            suspend_foreign_keys: Disable foreign-key enforcement for the block.

        Raises:
            LibraryError: If the transaction cannot be started or committed.
        """
        restore_foreign_keys = False
        if suspend_foreign_keys and self.foreign_keys_enabled():
            self._execute("PRAGMA foreign_keys = OFF")
            restore_foreign_keys = True

        try:
            self._execute("BEGIN")
            try:
                yield self
            except BaseException:
                self._rollback()
                raise
            if commit:
                try:
                    self._execute("COMMIT")
                except LibraryError:
                    self._rollback()
                    raise
            else:
                self._rollback()
        finally:
            if restore_foreign_keys:
                self._execute("PRAGMA foreign_keys = ON")

    def _rollback(self) -> None:
        if self._conn.in_transaction:
            self._conn.execute("ROLLBACK")

    def close(self) -> None:
        self._conn.close()
