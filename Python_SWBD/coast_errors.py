"""
Exceptions raised while building or reading coastline archives.

Every failure is terminal: a partially written archive has header entries
pointing at content that may not exist, so callers abort the run instead of
retrying.
"""

from __future__ import annotations


class CoastlineError(Exception):
    """Base class for coastline build/read failures."""


class RangeOverflowError(CoastlineError, ValueError):
    """A value does not fit the fixed field width reserved for it."""


class StagingError(CoastlineError):
    """Staged per-cell segment data is truncated or corrupt."""


class ArchiveFormatError(CoastlineError, ValueError):
    """A coastline archive does not match the expected layout."""
