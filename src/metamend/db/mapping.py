# ABOUTME: Converts device-library SQLite rows into StoredBookRecord values.
# ABOUTME: NULL columns become empty strings or zero so the reconciler can compare plainly.

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class StoredBookRecord:
    """A book as currently cached in the device library database.

    ``author`` and ``author_sort`` are the joined display and sort strings
    ("A, B" and "X & Y"); ``genre`` is the first linked genre name, if any.
    """

    id: int
    file_path: str
    author: str = ""
    author_sort: str = ""
    first_letter: str = ""
    genre: str = ""
    series: str = ""
    series_index: int = 0


def join_file_path(folder: str, filename: str) -> str:
    """Join a folders.name prefix and a files.filename the way the device stores them."""
    return f"{folder.rstrip('/')}/{filename}"


def row_to_record(row: Any) -> StoredBookRecord:
    """Convert a record-source row (dict-like) to a StoredBookRecord."""
    return StoredBookRecord(
        id=row["id"],
        file_path=join_file_path(row["folder"], row["filename"]),
        author=row["author"] or "",
        author_sort=row["firstauthor"] or "",
        first_letter=row["first_author_letter"] or "",
        genre=row["genre"] or "",
        series=row["series"] or "",
        series_index=row["numinseries"] or 0,
    )
