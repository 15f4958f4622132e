"""Directory layout for the archive, sync and workspace trees."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class DirectoryLayout:
    """
    Resolved directory tree used by every ingestion path.

    archive/roms/<platform>/          archived ROM copies (or hard links)
    archive/manifests/<platform>.json per-platform manifest
    archive/manifests/metadata/       per-ROM metadata records
    archive/bios/                     BIOS files checked by the validator
    sync/content/roms/<platform>/     promoted ROMs
    sync/playlists/<platform>.lpl     frontend playlists
    sync/downloads/<platform>/        bulk publication tree
    """
    archive_root: Path
    sync_root: Path
    downloads: Path
    workspace: Path

    @classmethod
    def from_base(cls, base: Path) -> 'DirectoryLayout':
        base = Path(base).expanduser().resolve()
        return cls(
            archive_root=base / 'archive',
            sync_root=base / 'sync',
            downloads=base / 'sync' / 'downloads',
            workspace=base / 'workspace',
        )

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'DirectoryLayout':
        """
        Build a layout from the paths section.

        Unset trees default to <base>/archive, <base>/sync, <sync>/downloads
        and <base>/workspace. Relative paths are resolved against base.
        """
        paths = config.get('paths', {}) or {}
        base = Path(paths.get('base') or Path.cwd()).expanduser().resolve()
        defaults = cls.from_base(base)

        archive_root = _resolve(paths.get('archive'), base) or defaults.archive_root
        sync_root = _resolve(paths.get('sync'), base) or defaults.sync_root
        downloads = _resolve(paths.get('downloads'), base) or sync_root / 'downloads'
        workspace = _resolve(paths.get('workspace'), base) or defaults.workspace

        return cls(
            archive_root=archive_root,
            sync_root=sync_root,
            downloads=downloads,
            workspace=workspace,
        )

    @property
    def archive_roms(self) -> Path:
        return self.archive_root / 'roms'

    @property
    def manifests(self) -> Path:
        return self.archive_root / 'manifests'

    @property
    def metadata(self) -> Path:
        return self.manifests / 'metadata'

    @property
    def bios(self) -> Path:
        return self.archive_root / 'bios'

    @property
    def sync_roms(self) -> Path:
        return self.sync_root / 'content' / 'roms'

    @property
    def playlists(self) -> Path:
        return self.sync_root / 'playlists'

    def manifest_path(self, platform_id: str) -> Path:
        return self.manifests / f"{platform_id}.json"

    def playlist_path(self, platform_id: str) -> Path:
        return self.playlists / f"{platform_id}.lpl"

    def output_roots(self) -> List[Path]:
        """Trees the scanner must never descend into."""
        return [self.archive_root, self.sync_root, self.downloads, self.workspace]

    def ensure(self) -> None:
        """Create the fixed directories of the layout."""
        for directory in (
            self.archive_roms, self.manifests, self.bios,
            self.sync_roms, self.playlists, self.downloads,
        ):
            directory.mkdir(parents=True, exist_ok=True)


def _resolve(value: Optional[str], base: Path) -> Optional[Path]:
    if not value:
        return None
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = base / path
    return path.resolve()
