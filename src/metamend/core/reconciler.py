# ABOUTME: Decides, field by field, whether a stored book record needs correcting.
# ABOUTME: Compares against freshly extracted EPUB metadata using substring containment.

from collections.abc import Iterable
from dataclasses import asdict, dataclass, field

from metamend.db.mapping import StoredBookRecord
from metamend.db.updates import (
    FieldUpdate,
    LinkGenre,
    ReplaceAuthor,
    ReplaceAuthorSort,
    ReplaceFirstLetter,
    SetSeries,
)
from metamend.metadata.types import ExtractedMetadata

# Books in Adobe Digital Editions' folder are DRM-protected; their package
# documents are not readable.
DRM_VAULTS: tuple[str, ...] = ("/mnt/ext1/Digital Editions",)

_NUL = "\0"


@dataclass
class FixStatistics:
    """Counters for one fix pass (or one book's share of it)."""

    authors_fixed: int = 0
    sorting_fixed: int = 0
    genres_fixed: int = 0
    series_fixed: int = 0
    ghost_books_cleaned: int = 0
    drm_skipped: int = 0

    @property
    def anything_fixed(self) -> bool:
        """Whether any repair happened. Skipped DRM books don't count."""
        return (
            self.authors_fixed > 0
            or self.sorting_fixed > 0
            or self.genres_fixed > 0
            or self.series_fixed > 0
            or self.ghost_books_cleaned > 0
        )

    def merge(self, other: "FixStatistics") -> None:
        """Add another tally's counters into this one."""
        self.authors_fixed += other.authors_fixed
        self.sorting_fixed += other.sorting_fixed
        self.genres_fixed += other.genres_fixed
        self.series_fixed += other.series_fixed
        self.ghost_books_cleaned += other.ghost_books_cleaned
        self.drm_skipped += other.drm_skipped

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass
class Reconciliation:
    """Update intents for one book plus the counters they account for."""

    updates: list[FieldUpdate] = field(default_factory=list)
    stats: FixStatistics = field(default_factory=FixStatistics)

    @property
    def needs_update(self) -> bool:
        return bool(self.updates)


def _byte_length(value: str) -> int:
    return len(value.encode("utf-8"))


def is_drm_protected(file_path: str, vaults: Iterable[str] = DRM_VAULTS) -> bool:
    """Whether file_path lies inside one of the DRM vault directories.

    A pure path-prefix check; the file itself is never inspected.
    """
    for vault in vaults:
        prefix = vault.rstrip("/") + "/"
        if file_path.startswith(prefix):
            return True
    return False


def reconcile(record: StoredBookRecord, metadata: ExtractedMetadata) -> Reconciliation:
    """Compute the corrections a stored record needs, given its EPUB's metadata.

    Rules, applied in order (all comparisons case-sensitive):

    1. Sort string: if any extracted sort key is missing from the stored
       sort string, replace it with the sorted sort keys joined by " & ".
    2. First letter: uppercase first character of that candidate, when it
       is non-empty and differs from the stored letter.
    3. Display string: if any extracted name is missing from the stored
       string, or the joined names differ from it in UTF-8 byte length,
       replace it with the names in document order joined by ", ". A book
       with no authors therefore clears a non-empty stored string.
    4. Genre: only when none is stored and the EPUB has one.
    5. Series: only when none is stored and the EPUB has one.

    Staleness is tested by substring containment rather than equality, so
    a stored value with extra decoration is left alone. The length check
    in rule 3 catches a stored "Jo, Jo" against a candidate "Jo, Jo Smith",
    which containment alone misses.

    Args:
        record: The book as the device currently stores it.
        metadata: Metadata extracted from the book's package document.

    Returns:
        A Reconciliation with zero or more updates and the matching counters.
    """
    result = Reconciliation()
    stats = result.stats

    sort_keys = metadata.sort_keys
    candidate_sort = metadata.author_sort
    if any(key not in record.author_sort for key in sort_keys):
        result.updates.append(ReplaceAuthorSort(candidate_sort))
        stats.authors_fixed += 1

    candidate_letter = metadata.first_letter
    if (
        candidate_letter
        and candidate_letter != _NUL
        and candidate_letter != record.first_letter
    ):
        result.updates.append(ReplaceFirstLetter(candidate_letter))
        stats.sorting_fixed += 1

    candidate_display = metadata.author
    if (
        any(name not in record.author for name in metadata.author_names)
        or _byte_length(candidate_display) != _byte_length(record.author)
    ):
        result.updates.append(ReplaceAuthor(candidate_display))
        stats.authors_fixed += 1

    if not record.genre and metadata.genre:
        result.updates.append(LinkGenre(metadata.genre))
        stats.genres_fixed += 1

    if not record.series and metadata.series.name:
        result.updates.append(SetSeries(metadata.series.name, metadata.series.index))
        stats.series_fixed += 1

    return result
