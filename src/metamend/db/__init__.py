# ABOUTME: Public API for the device library database layer.
# ABOUTME: Exports connection management, the DeviceLibrary store, and record/update types.

from metamend.db.connection import DEFAULT_DB_PATH, open_device_library
from metamend.db.library import (
    DEFAULT_EXTENSION,
    DEFAULT_STORAGE_ID,
    DeviceLibrary,
    LibraryError,
)
from metamend.db.mapping import StoredBookRecord
from metamend.db.schema import SchemaCapability
from metamend.db.updates import (
    FieldUpdate,
    LinkGenre,
    ReplaceAuthor,
    ReplaceAuthorSort,
    ReplaceFirstLetter,
    SetSeries,
)

__all__ = [
    "DEFAULT_DB_PATH",
    "DEFAULT_EXTENSION",
    "DEFAULT_STORAGE_ID",
    "DeviceLibrary",
    "FieldUpdate",
    "LibraryError",
    "LinkGenre",
    "ReplaceAuthor",
    "ReplaceAuthorSort",
    "ReplaceFirstLetter",
    "SchemaCapability",
    "SetSeries",
    "StoredBookRecord",
    "open_device_library",
]
