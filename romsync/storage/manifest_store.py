"""Per-platform manifest files: archive/manifests/<platform>.json."""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from romsync.config.layout import DirectoryLayout
from romsync.pipeline.errors import CorruptManifestError
from romsync.pipeline.rom_types import ManifestEntry
from romsync.storage.json_store import atomic_write_json, read_json, upsert_records
from romsync.storage.locks import PathLockRegistry

logger = logging.getLogger(__name__)


def _entry_matches(new: Dict[str, Any], existing: Dict[str, Any]) -> bool:
    if new.get('id') == existing.get('id'):
        return True
    return bool(new.get('hash')) and new.get('hash') == existing.get('hash')


class ManifestStore:
    """
    Reads and upserts manifest arrays.

    Invariant: no two entries in one manifest share an id or a non-empty
    content hash. Writers update the matching entry in place.
    """

    def __init__(self, layout: DirectoryLayout, locks: Optional[PathLockRegistry] = None):
        self.layout = layout
        self.locks = locks if locks is not None else PathLockRegistry()

    def path_for(self, platform_id: str) -> Path:
        return self.layout.manifest_path(platform_id)

    def load(self, platform_id: str) -> List[Dict[str, Any]]:
        """
        Load a platform's manifest (absent file = empty list).

        Raises:
            CorruptManifestError: If the file is not a JSON array of objects
        """
        return self._load_path(self.path_for(platform_id))

    def upsert(self, entry: ManifestEntry) -> int:
        """Insert or replace one entry. Returns the manifest size afterwards."""
        return self.upsert_many(entry.platform, [entry])

    def upsert_many(
        self,
        platform_id: str,
        entries: Sequence[ManifestEntry],
        reuse_ids_by_filename: bool = False,
    ) -> int:
        """
        Merge entries into a platform manifest with a single write.

        With reuse_ids_by_filename, an entry takes the id of the existing
        entry with the same filename, so republishing a file replaces its
        record even when no hash was computed.

        Raises:
            CorruptManifestError: If the existing manifest is malformed
            ArchiveIOError: If the manifest cannot be written
        """
        path = self.path_for(platform_id)
        with self.locks.hold(path):
            records = self._load_path(path)
            incoming = [e.to_dict() for e in entries]
            if reuse_ids_by_filename:
                known = {r.get('filename'): r.get('id') for r in records}
                for record in incoming:
                    record['id'] = known.get(record['filename']) or record['id']
            upsert_records(records, incoming, _entry_matches)
            atomic_write_json(path, records)

        logger.debug(f"Wrote {len(entries)} entr{'y' if len(entries) == 1 else 'ies'} to {path.name} ({len(records)} total)")
        return len(records)

    def platforms(self) -> List[str]:
        """Platform ids that currently have a manifest file."""
        if not self.layout.manifests.is_dir():
            return []
        return sorted(p.stem for p in self.layout.manifests.glob('*.json') if p.is_file())

    def _load_path(self, path: Path) -> List[Dict[str, Any]]:
        if not path.exists():
            return []
        try:
            data = read_json(path)
        except ValueError as e:
            raise CorruptManifestError(f"Corrupt manifest {path.name}: {e}", path) from e

        if not isinstance(data, list) or any(not isinstance(item, dict) for item in data):
            raise CorruptManifestError(
                f"Corrupt manifest {path.name}: expected a JSON array of entries", path
            )
        return data
