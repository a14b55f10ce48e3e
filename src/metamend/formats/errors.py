# ABOUTME: Exceptions raised while reading metadata out of an EPUB file.
# ABOUTME: All of them are recoverable per book: the fix pass skips the book and moves on.


class EpubReadError(Exception):
    """Raised when an EPUB file cannot be read or parsed."""


class ArchiveUnreadable(EpubReadError):
    """Raised when the file is missing, not a zip archive, or lacks a required entry."""


class MalformedContainer(EpubReadError):
    """Raised when META-INF/container.xml names no package document."""


class MalformedPackage(EpubReadError):
    """Raised when the package document is not well-formed XML."""
