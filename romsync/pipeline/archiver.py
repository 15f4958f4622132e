"""Phase 4: persist ROMs into the archive tree and record them in manifests."""

import logging
from pathlib import Path
from typing import Optional

from romsync.config.layout import DirectoryLayout
from romsync.pipeline.rom_types import ManifestEntry, ROMDescriptor, utc_now_iso
from romsync.storage.file_ops import copy_file
from romsync.storage.json_store import atomic_write_json
from romsync.storage.manifest_store import ManifestStore

logger = logging.getLogger(__name__)


class Archiver:
    """Copies ROMs to archive/roms/<platform>/ and maintains manifests."""

    def __init__(self, layout: DirectoryLayout, manifests: Optional[ManifestStore] = None):
        self.layout = layout
        self.manifests = manifests if manifests is not None else ManifestStore(layout)

    def archive_path(self, rom: ROMDescriptor) -> Path:
        return self.layout.archive_roms / (rom.platform or 'unknown') / rom.filename

    def archive_rom(self, rom: ROMDescriptor) -> Path:
        """
        Copy the source file into the archive.

        Raises:
            ArchiveIOError: Source missing or destination not writable
        """
        destination = copy_file(rom.path, self.archive_path(rom))
        logger.info(f"Archived {rom.filename} -> {destination}")
        return destination

    def write_manifest(self, entry: ManifestEntry) -> int:
        """
        Upsert entry into archive/manifests/<platform>.json.

        Returns:
            Number of entries in the manifest afterwards

        Raises:
            CorruptManifestError: Existing manifest is malformed
            ArchiveIOError: Manifest cannot be written
        """
        return self.manifests.upsert(entry)

    def store_metadata(self, rom: ROMDescriptor) -> Path:
        """Write archive/manifests/metadata/<id>.json for one ROM."""
        metadata_path = self.layout.metadata / f"{rom.id}.json"
        record = {
            'id': rom.id,
            'filename': rom.filename,
            'platform': rom.platform,
            'hash': rom.hash,
            'size': rom.size,
            'extension': rom.extension,
            'metadata': rom.metadata,
            'storedAt': utc_now_iso(),
        }
        atomic_write_json(metadata_path, record)
        return metadata_path
