"""Per-platform frontend playlists: sync/playlists/<platform>.lpl."""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from romsync.config.layout import DirectoryLayout
from romsync.pipeline.errors import CorruptPlaylistError
from romsync.pipeline.rom_types import PLACEHOLDER_CHECKSUM, PlaylistEntry
from romsync.storage.json_store import atomic_write_json, read_json, upsert_records
from romsync.storage.locks import PathLockRegistry

logger = logging.getLogger(__name__)

# Header fields the frontend expects, in its own key order
PLAYLIST_VERSION = "1.5"


def new_playlist() -> Dict[str, Any]:
    return {
        'version': PLAYLIST_VERSION,
        'default_core_path': '',
        'default_core_name': '',
        'label_display_mode': 0,
        'right_thumbnail_mode': 0,
        'left_thumbnail_mode': 0,
        'sort_mode': 0,
        'items': [],
    }


def _item_matches(new: Dict[str, Any], existing: Dict[str, Any]) -> bool:
    if new.get('path') == existing.get('path'):
        return True
    crc = new.get('crc32')
    return bool(crc) and crc != PLACEHOLDER_CHECKSUM and crc == existing.get('crc32')


class PlaylistStore:
    """
    Reads and upserts playlist files.

    Items are de-duplicated by exact path or by checksum prefix; a new item
    matching either replaces the existing one. The placeholder checksum
    '00000000' never counts as a match.
    """

    def __init__(self, layout: DirectoryLayout, locks: Optional[PathLockRegistry] = None):
        self.layout = layout
        self.locks = locks if locks is not None else PathLockRegistry()

    def path_for(self, platform_id: str) -> Path:
        return self.layout.playlist_path(platform_id)

    def load(self, platform_id: str) -> Dict[str, Any]:
        """
        Load a platform's playlist (absent file = empty playlist).

        Raises:
            CorruptPlaylistError: If the file is not a playlist object
        """
        return self._load_path(self.path_for(platform_id))

    def upsert(self, platform_id: str, entry: PlaylistEntry) -> int:
        return self.upsert_many(platform_id, [entry])

    def upsert_many(self, platform_id: str, entries: Sequence[PlaylistEntry]) -> int:
        """
        Merge entries into a platform playlist with a single write.

        Returns:
            Number of items in the playlist afterwards

        Raises:
            CorruptPlaylistError: If the existing playlist is malformed
            ArchiveIOError: If the playlist cannot be written
        """
        path = self.path_for(platform_id)
        with self.locks.hold(path):
            playlist = self._load_path(path)
            upsert_records(playlist['items'], [e.to_dict() for e in entries], _item_matches)
            atomic_write_json(path, playlist)

        logger.debug(f"Wrote {len(entries)} item(s) to {path.name} ({len(playlist['items'])} total)")
        return len(playlist['items'])

    def _load_path(self, path: Path) -> Dict[str, Any]:
        if not path.exists():
            return new_playlist()
        try:
            data = read_json(path)
        except ValueError as e:
            raise CorruptPlaylistError(f"Corrupt playlist {path.name}: {e}", path) from e

        items = data.get('items', []) if isinstance(data, dict) else None
        if not isinstance(items, list) or any(not isinstance(item, dict) for item in items):
            raise CorruptPlaylistError(
                f"Corrupt playlist {path.name}: expected an object with an items array", path
            )

        # Keep any header fields the frontend added, fill in missing ones
        playlist = new_playlist()
        playlist.update(data)
        playlist['items'] = list(data.get('items', []))
        return playlist
