"""Exception hierarchy raised by the catalog sync engine."""
from __future__ import annotations


class SyncError(RuntimeError):
    """Base class for sync engine failures."""


class FileServerError(SyncError):
    """Raised when the file server listing cannot be retrieved."""


class MalformedListingError(SyncError):
    """Raised when the file server listing does not have the expected shape.

    This aborts the remainder of the running sync routine.
    """


class MissingAssetError(SyncError):
    """Raised when an entity lacks a required asset such as its video file."""


class MetadataUnavailableError(SyncError):
    """Raised when a metadata document could not be fetched for an entity."""
