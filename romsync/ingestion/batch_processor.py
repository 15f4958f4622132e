"""
Bulk directory ingestion

Scans a directory tree, publishes every recognized ROM into the downloads
and archive trees as hard links, and records the results in manifests and
playlists. Per-file work runs on a bounded thread pool; manifest and
playlist writes are deferred until every worker has finished, then done
once per platform.
"""

import asyncio
import logging
import os
import time
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from romsync.config.layout import DirectoryLayout
from romsync.config.platforms import PlatformCatalog
from romsync.pipeline.errors import ArchiveIOError, InvalidInputError, RomSyncError
from romsync.pipeline.hash_calculator import calculate_hash
from romsync.pipeline.rom_types import (
    CHECKSUM_PREFIX_LENGTH,
    PLACEHOLDER_CHECKSUM,
    ManifestEntry,
    PlaylistEntry,
    generate_rom_id,
    utc_now_iso,
)
from romsync.storage.file_ops import is_name_collision, link_or_copy
from romsync.storage.locks import PathLockRegistry
from romsync.storage.manifest_store import ManifestStore
from romsync.storage.playlist_store import PlaylistStore

logger = logging.getLogger(__name__)


@dataclass
class ProcessedFile:
    """One file published by the bulk processor."""
    source: Path
    platform: str
    size: int
    hash: Optional[str]
    download_path: Path
    archive_path: Path
    linked: bool  # False when either destination had to be copied

    @property
    def checksum_prefix(self) -> str:
        if not self.hash:
            return PLACEHOLDER_CHECKSUM
        return self.hash[:CHECKSUM_PREFIX_LENGTH]


@dataclass
class BatchResult:
    """Summary of one bulk run."""
    total: int = 0
    processed: int = 0
    failed: int = 0
    skipped: int = 0
    duration: float = 0.0
    cancelled: bool = False
    files: List[ProcessedFile] = field(default_factory=list)
    errors: List[Dict[str, str]] = field(default_factory=list)
    by_platform: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total': self.total,
            'processed': self.processed,
            'failed': self.failed,
            'skipped': self.skipped,
            'duration': round(self.duration, 3),
            'cancelled': self.cancelled,
            'byPlatform': dict(self.by_platform),
            'errors': list(self.errors),
        }


class BatchProcessor:
    """
    Parallel hard-link publisher for large collections.

    Example:
        processor = BatchProcessor(catalog, layout, config)
        result = await processor.process_directory('/mnt/roms')
        print(result.processed, result.failed, result.by_platform)
    """

    def __init__(
        self,
        catalog: PlatformCatalog,
        layout: DirectoryLayout,
        config: Dict[str, Any],
        manifests: Optional[ManifestStore] = None,
        playlists: Optional[PlaylistStore] = None,
        locks: Optional[PathLockRegistry] = None,
    ):
        self.catalog = catalog
        self.layout = layout

        locks = locks if locks is not None else PathLockRegistry()
        self.manifests = manifests if manifests is not None else ManifestStore(layout, locks)
        self.playlists = playlists if playlists is not None else PlaylistStore(layout, locks)

        batch = config.get('batch', {}) or {}
        self.compute_hashes = batch.get('compute_hashes', True)
        self.progress_interval = max(1, int(batch.get('progress_interval', 100)))
        self.exclude_dirs = set(batch.get('exclude_dirs') or [])
        multiplier = int(batch.get('concurrency_multiplier', 4))
        self.max_workers = max(1, (os.cpu_count() or 1) * multiplier)

    def scan(self, root: Union[str, Path]) -> List[Path]:
        """
        Collect recognized ROM files under root.

        A single recognized file is returned as-is. Hidden entries, excluded
        directory names and the layout's own output trees are skipped.

        Raises:
            InvalidInputError: If root does not exist
        """
        root = Path(root).expanduser()
        if root.is_file():
            return [root.resolve()] if self.catalog.is_recognized(root) else []
        if not root.is_dir():
            raise InvalidInputError(f"Invalid input: path not found: {root}")

        output_roots = {p.resolve() for p in self.layout.output_roots()}
        found: List[Path] = []

        def on_error(error: OSError) -> None:
            logger.warning(f"Skipping unreadable path {error.filename}: {error.strerror}")

        for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
            current = Path(dirpath)
            # Prune in place so os.walk never descends into them
            dirnames[:] = sorted(
                d for d in dirnames
                if not d.startswith('.')
                and d not in self.exclude_dirs
                and (current / d).resolve() not in output_roots
            )
            for name in sorted(filenames):
                if name.startswith('.'):
                    continue
                candidate = current / name
                if self.catalog.is_recognized(candidate):
                    found.append(candidate.resolve())

        logger.info(f"Scan complete: {len(found)} ROM file(s) under {root}")
        return found

    async def process_directory(
        self,
        path: Union[str, Path],
        cancel_event: Optional[Any] = None,
    ) -> BatchResult:
        """
        Scan path and publish everything found.

        Args:
            path: Directory root or a single ROM file
            cancel_event: asyncio.Event or threading.Event; once set, files
                not yet started are skipped

        Raises:
            InvalidInputError: If path does not exist
        """
        started = time.monotonic()
        files = await asyncio.to_thread(self.scan, path)
        return await self.process_files(files, cancel_event=cancel_event, started=started)

    async def process_files(
        self,
        files: Iterable[Union[str, Path]],
        cancel_event: Optional[Any] = None,
        started: Optional[float] = None,
    ) -> BatchResult:
        """
        Publish an explicit list of files.

        Unrecognized extensions count as skipped. Per-file failures are
        recorded in the result and never abort the run.
        """
        started = started if started is not None else time.monotonic()
        paths = [Path(f) for f in files]
        result = BatchResult(total=len(paths))

        if paths:
            logger.info(f"Processing {len(paths)} file(s) with {self.max_workers} workers")

        loop = asyncio.get_running_loop()
        semaphore = asyncio.Semaphore(self.max_workers)
        completed = 0

        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix='romsync-bulk') as executor:

            async def run(source: Path) -> None:
                nonlocal completed
                async with semaphore:
                    if cancel_event is not None and cancel_event.is_set():
                        result.skipped += 1
                        result.cancelled = True
                        return

                    try:
                        processed = await loop.run_in_executor(executor, self._process_file, source)
                    except (RomSyncError, OSError) as e:
                        result.failed += 1
                        result.errors.append({'file': str(source), 'error': str(e)})
                        logger.warning(f"Failed to process {source}: {e}")
                    else:
                        if processed is None:
                            result.skipped += 1
                        else:
                            result.processed += 1
                            result.files.append(processed)
                            result.by_platform[processed.platform] = (
                                result.by_platform.get(processed.platform, 0) + 1
                            )

                    completed += 1
                    if completed % self.progress_interval == 0:
                        logger.info(f"Progress: {completed}/{result.total} files")

            await asyncio.gather(*(run(p) for p in paths))

        result.files.sort(key=lambda f: str(f.source))
        if result.files:
            await asyncio.to_thread(self._write_records, result)

        result.duration = time.monotonic() - started
        logger.info(
            f"Batch complete: {result.processed} processed, {result.failed} failed, "
            f"{result.skipped} skipped in {result.duration:.2f}s"
        )
        return result

    def _process_file(self, source: Path) -> Optional[ProcessedFile]:
        platform = self.catalog.for_path(source)
        if platform is None:
            logger.debug(f"Skipping unrecognized file: {source}")
            return None

        size = source.stat().st_size
        file_hash = calculate_hash(source) if self.compute_hashes else None

        download_path = self.layout.downloads / platform.id / source.name
        archive_path = self.layout.archive_roms / platform.id / source.name
        # A different file already published under this name keeps its records
        for destination in (download_path, archive_path):
            if is_name_collision(source, destination):
                raise ArchiveIOError(f"Name collision with existing {destination}")

        download_existed = download_path.exists()
        linked_download = link_or_copy(source, download_path)
        try:
            linked_archive = link_or_copy(source, archive_path)
        except ArchiveIOError:
            if not download_existed:
                download_path.unlink(missing_ok=True)
            raise

        return ProcessedFile(
            source=source,
            platform=platform.id,
            size=size,
            hash=file_hash,
            download_path=download_path,
            archive_path=archive_path,
            linked=linked_download and linked_archive,
        )

    def _write_records(self, result: BatchResult) -> None:
        """One manifest write and one playlist write per platform."""
        grouped: Dict[str, List[ProcessedFile]] = defaultdict(list)
        for processed in result.files:
            grouped[processed.platform].append(processed)

        for platform_id, items in sorted(grouped.items()):
            platform = self.catalog.get(platform_id)
            archived_at = utc_now_iso()

            manifest_entries = [
                ManifestEntry(
                    id=generate_rom_id(item.source.name),
                    filename=item.source.name,
                    platform=platform_id,
                    hash=item.hash or '',
                    size=item.size,
                    extension=item.source.suffix.lower(),
                    archived_at=archived_at,
                    metadata={
                        'source': str(item.source),
                        'destination': str(item.download_path),
                        'linked': item.linked,
                    },
                )
                for item in items
            ]
            playlist_entries = [
                PlaylistEntry(
                    path=str(item.download_path),
                    label=item.source.stem,
                    crc32=item.checksum_prefix,
                    db_name=platform.name if platform else platform_id,
                )
                for item in items
            ]

            try:
                self.manifests.upsert_many(platform_id, manifest_entries, reuse_ids_by_filename=True)
                self.playlists.upsert_many(platform_id, playlist_entries)
            except RomSyncError as e:
                logger.error(f"Failed to record {platform_id} batch: {e}")
                result.errors.append({'file': platform_id, 'error': str(e)})
