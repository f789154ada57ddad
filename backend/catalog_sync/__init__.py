"""
Catalog synchronization engine.

This package reconciles a file server's media listing against the catalog
database and produces the targeted update intents that bring the catalog in
line with the file server.
"""

from .errors import (
    FileServerError,
    MalformedListingError,
    MetadataUnavailableError,
    MissingAssetError,
    SyncError,
)
from .intents import UpdateIntent
from .listing import FileServerClient, FileServerConfig
from .metadata_fetcher import MetadataFetcher
from .orchestrator import SyncOrchestrator, SyncReport, SyncResults

__all__ = [
    "FileServerClient",
    "FileServerConfig",
    "FileServerError",
    "MalformedListingError",
    "MetadataFetcher",
    "MetadataUnavailableError",
    "MissingAssetError",
    "SyncError",
    "SyncOrchestrator",
    "SyncReport",
    "SyncResults",
    "UpdateIntent",
]
