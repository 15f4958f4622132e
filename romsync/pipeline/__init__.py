"""
Per-file ingestion pipeline for romsync.

Classifier -> Validator -> Normalizer -> Archiver -> Promoter, sequenced by
romsync.pipeline.orchestrator.PipelineOrchestrator.

Only the shared data types and errors are re-exported here. The storage
layer imports them, and the phase modules import the storage layer, so the
phases are imported from their own modules.
"""

from .rom_types import ROMDescriptor, ManifestEntry, PlaylistEntry, CheckResult, PipelineResult
from .errors import (
    RomSyncError,
    InvalidInputError,
    UnknownPlatformError,
    IntegrityError,
    HashError,
    InvalidNamingError,
    ArchiveIOError,
    CorruptManifestError,
    CorruptPlaylistError,
)

__all__ = [
    'ROMDescriptor',
    'ManifestEntry',
    'PlaylistEntry',
    'CheckResult',
    'PipelineResult',
    'RomSyncError',
    'InvalidInputError',
    'UnknownPlatformError',
    'IntegrityError',
    'HashError',
    'InvalidNamingError',
    'ArchiveIOError',
    'CorruptManifestError',
    'CorruptPlaylistError',
]
