"""Phase 5: publish ROMs into the sync tree and frontend playlists."""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from romsync.config.layout import DirectoryLayout
from romsync.pipeline.rom_types import PlaylistEntry, ROMDescriptor
from romsync.storage.file_ops import copy_file
from romsync.storage.playlist_store import PlaylistStore

logger = logging.getLogger(__name__)


class Promoter:
    """Copies ROMs to sync/content/roms/<platform>/ and updates playlists."""

    def __init__(
        self,
        layout: DirectoryLayout,
        config: Dict[str, Any],
        playlists: Optional[PlaylistStore] = None,
    ):
        self.layout = layout
        self.config = config
        self.playlists = playlists if playlists is not None else PlaylistStore(layout)

    def sync_path(self, rom: ROMDescriptor) -> Path:
        return self.layout.sync_roms / (rom.platform or 'unknown') / rom.filename

    def promote_rom(self, rom: ROMDescriptor) -> Path:
        """
        Copy the ROM into the sync tree.

        The archived copy is preferred over the original source, so the sync
        tree is fed from the verified archive whenever it exists.

        Raises:
            ArchiveIOError: Neither source is readable or destination not writable
        """
        archived = self.layout.archive_roms / (rom.platform or 'unknown') / rom.filename
        source = archived if archived.is_file() else rom.path

        destination = copy_file(source, self.sync_path(rom))
        logger.info(f"Promoted {rom.filename} -> {destination}")
        return destination

    def playlist_entry(self, rom: ROMDescriptor) -> PlaylistEntry:
        return PlaylistEntry(
            path=str(self.sync_path(rom)),
            label=rom.stem,
            crc32=rom.checksum_prefix,
            db_name=rom.platform or 'Unknown',
        )

    def update_playlist(self, rom: ROMDescriptor) -> PlaylistEntry:
        """
        Upsert the ROM into sync/playlists/<platform>.lpl.

        Raises:
            CorruptPlaylistError: Existing playlist is malformed
            ArchiveIOError: Playlist cannot be written
        """
        entry = self.playlist_entry(rom)
        self.playlists.upsert(rom.platform or 'unknown', entry)
        return entry

    def sync_thumbnails(self, rom: ROMDescriptor) -> bool:
        """Thumbnail sync hook. Returns True only when thumbnails were synced."""
        if not self.config.get('pipeline', {}).get('enable_thumbnails', False):
            logger.debug(f"Thumbnail sync disabled, skipping {rom.filename}")
            return False

        logger.info(f"Thumbnail sync not implemented, skipping {rom.filename}")
        return False
