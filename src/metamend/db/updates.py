# ABOUTME: Field-update intents accepted by the device library.
# ABOUTME: Produced by the reconciler, applied by DeviceLibrary inside one transaction.

from dataclasses import dataclass


@dataclass(frozen=True)
class ReplaceAuthorSort:
    """Replace books_impl.firstauthor (the author sort string)."""

    value: str


@dataclass(frozen=True)
class ReplaceFirstLetter:
    """Replace books_impl.first_author_letter."""

    value: str


@dataclass(frozen=True)
class ReplaceAuthor:
    """Replace books_impl.author (the display string)."""

    value: str


@dataclass(frozen=True)
class LinkGenre:
    """Create the genre if needed and link it to the book. Idempotent."""

    genre: str


@dataclass(frozen=True)
class SetSeries:
    """Set books_impl.series and numinseries."""

    name: str
    index: int


FieldUpdate = ReplaceAuthorSort | ReplaceFirstLetter | ReplaceAuthor | LinkGenre | SetSeries
