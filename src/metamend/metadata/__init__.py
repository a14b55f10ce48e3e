# ABOUTME: Metadata package for values extracted from EPUB package documents.
# ABOUTME: Exports the ExtractedMetadata dataclass and its parts.

from metamend.metadata.types import Author, ExtractedMetadata, Series

__all__ = [
    "Author",
    "ExtractedMetadata",
    "Series",
]
