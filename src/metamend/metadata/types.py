# ABOUTME: Core metadata data structures extracted from an EPUB package document.
# ABOUTME: ExtractedMetadata is the interchange format between parsing and reconciliation.

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Author:
    """A contributor whose role resolved to author ("aut")."""

    name: str
    sort_key: str = ""


@dataclass(frozen=True)
class Series:
    """Series (collection) membership. Empty name means no series."""

    name: str = ""
    index: int = 0


@dataclass
class ExtractedMetadata:
    """Metadata derived fresh from one book's package document.

    Built once per book during a fix pass, diffed against the stored record
    and then dropped. Authors keep document order; that order is significant
    for the display string but not for the sort string.
    """

    authors: list[Author] = field(default_factory=list)
    genre: str = ""
    series: Series = field(default_factory=Series)

    @property
    def author_names(self) -> list[str]:
        return [author.name for author in self.authors]

    @property
    def sort_keys(self) -> list[str]:
        """Non-empty sort keys in document order."""
        return [author.sort_key for author in self.authors if author.sort_key]

    @property
    def author(self) -> str:
        """Convenience property: joined author string for display."""
        return ", ".join(self.author_names)

    @property
    def author_sort(self) -> str:
        """Distinct sort keys in ordinal order, joined with " & "."""
        return " & ".join(sorted(set(self.sort_keys)))

    @property
    def first_letter(self) -> str:
        """Uppercased first character of author_sort, or empty."""
        sort = self.author_sort
        return sort[0].upper() if sort else ""

    @property
    def has_series(self) -> bool:
        return bool(self.series.name)
