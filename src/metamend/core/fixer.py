# ABOUTME: One fix pass over the device library: extract, reconcile, apply, sweep ghosts.
# ABOUTME: Every update of the pass is committed together or not at all.

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from metamend.core.reconciler import DRM_VAULTS, FixStatistics, is_drm_protected, reconcile
from metamend.db.library import DEFAULT_EXTENSION, DEFAULT_STORAGE_ID, DeviceLibrary
from metamend.formats.epub import extract_metadata
from metamend.metadata.types import ExtractedMetadata

logger = logging.getLogger(__name__)

# Reads one book file; returns None when it has no usable metadata.
ExtractFn = Callable[[Path | str], ExtractedMetadata | None]


@dataclass(frozen=True)
class FixOptions:
    """Settings for one fix pass."""

    storage_id: int = DEFAULT_STORAGE_ID
    extension: str = DEFAULT_EXTENSION
    drm_vaults: tuple[str, ...] = DRM_VAULTS
    remove_ghosts: bool = True
    dry_run: bool = False


def fix_library(
    library: DeviceLibrary,
    options: FixOptions | None = None,
    *,
    extract: ExtractFn = extract_metadata,
) -> FixStatistics:
    """Repair author, sorting, genre and series fields of every stored EPUB.

    Books are processed one at a time in stored-id order. A book whose file
    lies in a DRM vault is skipped before it is opened; a book whose file
    cannot be read or parsed is skipped silently (it will be retried on the
    next run). After all books, records without a file entry are swept.

    All updates and the sweep share one transaction. In dry-run mode it is
    rolled back, so the statistics describe what would have changed.

    Args:
        library: The device library store.
        options: Pass settings. Defaults to FixOptions().
        extract: Metadata extractor, injectable for tests.

    Returns:
        FixStatistics for the whole pass.

    Raises:
        LibraryError: On any store-level failure. Nothing is committed then.
    """
    options = options or FixOptions()
    stats = FixStatistics()
    capability = library.schema_capability()
    logger.debug("Schema capability: %s", capability.name)

    with library.transaction(commit=not options.dry_run, suspend_foreign_keys=True):
        records = library.list_books(options.storage_id, options.extension)
        logger.info("Checking %d book(s)", len(records))

        for record in records:
            if is_drm_protected(record.file_path, options.drm_vaults):
                logger.debug("Book %d is DRM-protected, skipping", record.id)
                stats.drm_skipped += 1
                continue

            metadata = extract(record.file_path)
            if metadata is None:
                continue

            result = reconcile(record, metadata)
            for update in result.updates:
                logger.debug("Book %d (%s): %s", record.id, record.file_path, update)
                library.apply(record.id, update)
            stats.merge(result.stats)

        if options.remove_ghosts:
            stats.ghost_books_cleaned = library.remove_ghost_books(capability)

    if options.dry_run:
        logger.info("Dry run: all changes rolled back")

    return stats
