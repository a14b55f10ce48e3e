# ABOUTME: SQLite connection management for the reading device's library database.
# ABOUTME: Opens an existing explorer-3.db (or creates a fresh one) with explicit transaction control.

import sqlite3
from pathlib import Path

from metamend.db.library import LibraryError
from metamend.db.schema import DEFAULT_SCHEMA_VERSION, DEVICE_SCHEMA, REQUIRED_TABLES

DEFAULT_DB_PATH = Path("/mnt/ext1/system/explorer-3/explorer-3.db")


def _existing_tables(conn: sqlite3.Connection) -> set[str]:
    cursor = conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
    return {row[0] for row in cursor.fetchall()}


def _apply_schema(conn: sqlite3.Connection, version: int) -> None:
    """Execute the DDL for a fresh device library and stamp its version."""
    conn.executescript(DEVICE_SCHEMA)
    conn.execute("INSERT INTO version (id) VALUES (?)", (version,))


def open_device_library(
    path: Path | None = None,
    *,
    create: bool = False,
    schema_version: int = DEFAULT_SCHEMA_VERSION,
) -> sqlite3.Connection:
    """Open the device library database.

    The connection runs in autocommit mode (``isolation_level=None``) so that
    DeviceLibrary can issue BEGIN/COMMIT itself and toggle foreign-key
    enforcement outside the transaction, where SQLite honours it.

    Args:
        path: Path to the database file. Defaults to the device's explorer-3.db.
        create: Create the file and the device tables if they don't exist.
            Never used against a real device; the firmware owns that schema.
        schema_version: Version stamped into a freshly created database.

    Returns:
        A configured sqlite3.Connection with sqlite3.Row as row factory.

    Raises:
        LibraryError: If the file is missing (and create is False), cannot be
            opened, or lacks the tables a device library must have.
    """
    db_path = path or DEFAULT_DB_PATH
    if create:
        db_path.parent.mkdir(parents=True, exist_ok=True)
    elif not db_path.is_file():
        raise LibraryError(f"Library database not found: {db_path}")

    try:
        conn = sqlite3.connect(str(db_path), isolation_level=None)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys=ON")
        tables = _existing_tables(conn)
        if create and not tables:
            _apply_schema(conn, schema_version)
            tables = _existing_tables(conn)
    except sqlite3.Error as exc:
        raise LibraryError(f"Cannot open library database {db_path}: {exc}") from exc

    missing = [name for name in REQUIRED_TABLES if name not in tables]
    if missing:
        conn.close()
        raise LibraryError(
            f"{db_path} does not look like a device library (missing: {', '.join(missing)})"
        )

    return conn
