"""ROM type definitions and data structures."""

import re
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

CHECKSUM_PREFIX_LENGTH = 8
PLACEHOLDER_CHECKSUM = "00000000"


def utc_now_iso() -> str:
    """ISO-8601 UTC timestamp used for every *At field."""
    return datetime.now(timezone.utc).isoformat()


def generate_rom_id(filename: str, timestamp_ms: Optional[int] = None) -> str:
    """
    Generate a ROM id from the sanitized filename and a millisecond timestamp.

    Uniqueness is best-effort: two files with the same sanitized name
    classified within the same millisecond collide.
    """
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    clean_name = re.sub(r'[^a-zA-Z0-9]', '-', filename).lower()
    return f"rom-{clean_name}-{timestamp_ms}"


@dataclass
class ROMDescriptor:
    """
    Information about a classified ROM file.

    This is the primary data structure passed through the ingestion pipeline.
    A descriptor belongs to exactly one pipeline invocation.
    """
    id: str                         # Generated id (see generate_rom_id)
    path: Path                      # Absolute path to the source file
    filename: str                   # Basename including extension
    extension: str                  # Lowercased, dotted extension
    size: int                       # File size in bytes
    platform: Optional[str] = None  # Platform id from the catalog
    hash: Optional[str] = None      # SHA-256 hex digest, set by the validator
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def stem(self) -> str:
        return Path(self.filename).stem

    @property
    def checksum_prefix(self) -> str:
        """First eight hex characters of the content hash, or the placeholder."""
        if not self.hash:
            return PLACEHOLDER_CHECKSUM
        return self.hash[:CHECKSUM_PREFIX_LENGTH]

    def to_manifest_entry(self) -> 'ManifestEntry':
        return ManifestEntry(
            id=self.id,
            filename=self.filename,
            platform=self.platform or 'unknown',
            hash=self.hash or '',
            size=self.size,
            extension=self.extension,
            archived_at=utc_now_iso(),
            metadata=dict(self.metadata),
        )


@dataclass
class ManifestEntry:
    """One archived ROM inside archive/manifests/<platform>.json."""
    id: str
    filename: str
    platform: str
    hash: str
    size: int
    extension: str
    archived_at: str = field(default_factory=utc_now_iso)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'filename': self.filename,
            'platform': self.platform,
            'hash': self.hash,
            'size': self.size,
            'extension': self.extension,
            'archivedAt': self.archived_at,
            'metadata': self.metadata,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ManifestEntry':
        return cls(
            id=data['id'],
            filename=data['filename'],
            platform=data.get('platform', 'unknown'),
            hash=data.get('hash', ''),
            size=int(data.get('size', 0)),
            extension=data.get('extension', ''),
            archived_at=data.get('archivedAt', ''),
            metadata=data.get('metadata') or {},
        )


@dataclass
class PlaylistEntry:
    """One launchable item inside sync/playlists/<platform>.lpl."""
    path: str
    label: str
    crc32: str = PLACEHOLDER_CHECKSUM
    db_name: str = "Unknown"
    core_path: str = "DETECT"
    core_name: str = "DETECT"

    def to_dict(self) -> Dict[str, Any]:
        # Key order follows the frontend's own playlist writer
        return {
            'path': self.path,
            'label': self.label,
            'core_path': self.core_path,
            'core_name': self.core_name,
            'crc32': self.crc32,
            'db_name': self.db_name,
        }


@dataclass
class CheckResult:
    """Outcome of a single validator check."""
    success: bool
    data: Any = None
    error: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class PipelineResult:
    """Outcome of running one file through the pipeline."""
    success: bool
    rom: Optional[ROMDescriptor] = None
    errors: List[str] = field(default_factory=list)
    phase: Optional[str] = None
