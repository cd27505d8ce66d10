"""Custom exception hierarchy for Cinedex.

These exceptions allow callers to discriminate error categories
and handle them appropriately while preserving the original context.
Backup file I/O failures are not wrapped: they surface as the built-in
``OSError`` raised by the filesystem.
"""

from __future__ import annotations


class CinedexError(Exception):
    """Base class for all Cinedex exceptions."""


class ConfigurationError(CinedexError):
    """Raised for malformed facet specifications or unknown facet/range codes."""


class EmptyIndexError(CinedexError):
    """Raised when a search is attempted against an index holding no documents."""


class EngineError(CinedexError):
    """Raised when the indexing engine rejects an add/search/flush/backup call."""


class StorageError(CinedexError):
    """Raised when the source database cannot be read."""
