"""Ingestion error taxonomy."""

from pathlib import Path
from typing import Optional, Union


class RomSyncError(Exception):
    """Base exception for ingestion errors."""
    pass


class InvalidInputError(RomSyncError):
    """Bad path: empty, traversal, directory, missing or unreadable."""
    pass


class UnknownPlatformError(RomSyncError):
    """Extension not present in the platform catalog."""
    pass


class IntegrityError(RomSyncError):
    """File is not currently readable."""
    pass


class HashError(RomSyncError):
    """Content hash could not be computed."""
    pass


class InvalidNamingError(RomSyncError):
    """Filename violates naming constraints."""
    pass


class ArchiveIOError(RomSyncError):
    """Copy, link or write failure (missing source, read-only destination)."""
    pass


class CorruptDataError(RomSyncError):
    """Existing JSON state file is malformed."""

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        super().__init__(message)
        self.path = Path(path) if path is not None else None


class CorruptManifestError(CorruptDataError):
    """Manifest file is not a JSON array of entries."""
    pass


class CorruptPlaylistError(CorruptDataError):
    """Playlist file is not a JSON object with an items array."""
    pass
