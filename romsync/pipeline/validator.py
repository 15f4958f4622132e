"""
Phase 2: validation checks

Each check is independent and reports a CheckResult instead of raising, so
the orchestrator can run all of them and collect every finding. Only the
integrity check gates another one (hashing).
"""

import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional

from romsync.config.layout import DirectoryLayout
from romsync.config.platforms import PlatformCatalog
from romsync.pipeline.errors import (
    CorruptManifestError,
    HashError,
    IntegrityError,
    InvalidNamingError,
)
from romsync.pipeline.hash_calculator import calculate_hash
from romsync.pipeline.rom_types import CheckResult, ROMDescriptor, utc_now_iso
from romsync.storage.manifest_store import ManifestStore

logger = logging.getLogger(__name__)

MAX_FILENAME_LENGTH = 255
FORBIDDEN_FILENAME_CHARS = '<>:"|?*'


def check_filename(filename: str) -> None:
    """
    Enforce filename constraints.

    Raises:
        InvalidNamingError: Empty name, no extension, longer than 255
            characters, or containing any of < > : " | ? *
    """
    if not filename or not filename.strip():
        raise InvalidNamingError("Invalid filename: name is empty")
    if len(filename) > MAX_FILENAME_LENGTH:
        raise InvalidNamingError(
            f"Invalid filename: longer than {MAX_FILENAME_LENGTH} characters"
        )
    bad = sorted({c for c in filename if c in FORBIDDEN_FILENAME_CHARS})
    if bad:
        raise InvalidNamingError(
            f"Invalid filename {filename!r}: contains forbidden characters {' '.join(bad)}"
        )
    if not Path(filename).suffix:
        raise InvalidNamingError(f"Invalid filename {filename!r}: missing extension")


class Validator:
    """Integrity, hash, duplicate, companion, BIOS and naming checks."""

    def __init__(
        self,
        catalog: PlatformCatalog,
        layout: DirectoryLayout,
        manifests: Optional[ManifestStore] = None,
    ):
        self.catalog = catalog
        self.layout = layout
        self.manifests = manifests if manifests is not None else ManifestStore(layout)

    def validate_integrity(self, rom: ROMDescriptor) -> CheckResult:
        """Confirm the file is currently readable."""
        try:
            if not rom.path.is_file():
                raise IntegrityError(f"File not found: {rom.path}")
            if not os.access(rom.path, os.R_OK):
                raise IntegrityError(f"File is not readable: {rom.path}")
            # Opening catches unreadable files os.access can't see
            with open(rom.path, 'rb') as f:
                f.read(1)
        except IntegrityError as e:
            return CheckResult(success=False, data=False, error=str(e))
        except OSError as e:
            return CheckResult(success=False, data=False, error=f"File access error: {e}")

        return CheckResult(success=True, data=True, metadata={'validatedAt': utc_now_iso()})

    def generate_hash(self, rom: ROMDescriptor) -> CheckResult:
        """Stream the file through SHA-256."""
        try:
            digest = calculate_hash(rom.path)
        except HashError as e:
            return CheckResult(success=False, error=str(e))

        return CheckResult(
            success=True,
            data=digest,
            metadata={
                'algorithm': 'sha256',
                'generatedAt': utc_now_iso(),
                'fileSize': rom.size,
            },
        )

    def check_duplicate(
        self, content_hash: str, platforms: Optional[Iterable[str]] = None
    ) -> CheckResult:
        """
        Look for content_hash in the manifests.

        Args:
            content_hash: Digest to search for
            platforms: Platform ids to search, or None for every manifest

        Returns:
            CheckResult with data=True on the first match (metadata carries
            the matching filename and platform). Malformed manifests are
            skipped and listed in metadata['warnings'].
        """
        warnings: List[str] = []
        platform_ids = list(platforms) if platforms is not None else self.manifests.platforms()

        for platform_id in platform_ids:
            try:
                entries = self.manifests.load(platform_id)
            except CorruptManifestError as e:
                logger.warning(f"Skipping manifest during duplicate check: {e}")
                warnings.append(str(e))
                continue

            for entry in entries:
                if content_hash and entry.get('hash') == content_hash:
                    return CheckResult(
                        success=True,
                        data=True,
                        metadata={
                            'matchedFilename': entry.get('filename'),
                            'matchedPlatform': platform_id,
                            'matchedId': entry.get('id'),
                            'warnings': warnings,
                        },
                    )

        return CheckResult(
            success=True,
            data=False,
            metadata={'checkedAt': utc_now_iso(), 'warnings': warnings},
        )

    def check_companion_files(self, rom: ROMDescriptor) -> CheckResult:
        """Find same-basename files with one of the platform's companion extensions."""
        platform = self.catalog.get(rom.platform)
        if platform is None or not platform.companion_extensions:
            return CheckResult(
                success=True,
                data=[],
                metadata={'noCompanionFilesRequired': True},
            )

        directory = rom.path.parent
        try:
            companions = sorted(
                entry for entry in directory.iterdir()
                if entry.is_file()
                and entry.stem == rom.stem
                and entry.suffix.lower() in platform.companion_extensions
                and entry.name != rom.filename
            )
        except OSError as e:
            return CheckResult(success=False, data=[], error=f"Cannot scan {directory}: {e}")

        return CheckResult(
            success=True,
            data=companions,
            metadata={'companionFilesFound': len(companions)},
        )

    def validate_bios_dependencies(self, rom: ROMDescriptor) -> CheckResult:
        """
        Check the platform's BIOS files under archive/bios.

        Reports found and missing lists; success is False when anything is
        missing, and the orchestrator decides how severe that is.
        """
        platform = self.catalog.get(rom.platform)
        if platform is None:
            return CheckResult(success=False, data=False, error=f"Platform not found: {rom.platform}")

        if not platform.requires_bios:
            return CheckResult(success=True, data=True, metadata={'biosRequired': False})

        found = [name for name in platform.bios_files if (self.layout.bios / name).is_file()]
        missing = [name for name in platform.bios_files if name not in found]

        result = CheckResult(
            success=not missing,
            data=not missing,
            metadata={'biosRequired': True, 'found': found, 'missing': missing},
        )
        if missing:
            result.error = f"Missing BIOS for {platform.id}: {', '.join(missing)}"
        return result

    def validate_naming(self, rom: ROMDescriptor) -> CheckResult:
        try:
            check_filename(rom.filename)
        except InvalidNamingError as e:
            return CheckResult(success=False, data=False, error=str(e))
        return CheckResult(success=True, data=True)
