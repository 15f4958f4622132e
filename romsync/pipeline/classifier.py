"""Phase 1: classify a file into a platform by extension."""

import logging
import os
from pathlib import Path
from typing import Union

from romsync.config.platforms import PlatformCatalog
from romsync.pipeline.errors import InvalidInputError, UnknownPlatformError
from romsync.pipeline.rom_types import ROMDescriptor, generate_rom_id, utc_now_iso

logger = logging.getLogger(__name__)


class Classifier:
    """Resolves a path to a ROMDescriptor. No side effects."""

    def __init__(self, catalog: PlatformCatalog):
        self.catalog = catalog

    def classify(self, file_path: Union[str, Path]) -> ROMDescriptor:
        """
        Classify a file by its extension.

        Args:
            file_path: Path to the candidate ROM

        Returns:
            ROMDescriptor with generated id, size and platform

        Raises:
            InvalidInputError: Empty path, traversal segment, directory,
                missing or unreadable file
            UnknownPlatformError: Extension not in the catalog
        """
        raw = str(file_path) if file_path is not None else ''
        if not raw.strip():
            raise InvalidInputError("Invalid input: file path is required")

        # Reject traversal before touching the filesystem
        parts = Path(raw).parts
        if '..' in parts:
            raise InvalidInputError(f"Invalid file path: {raw}")

        resolved = Path(os.path.abspath(raw))
        if resolved.name != Path(raw).name:
            raise InvalidInputError(f"Invalid file path: {raw}")

        try:
            stat = resolved.stat()
        except FileNotFoundError:
            raise InvalidInputError(f"Invalid input: file not found: {resolved}")
        except OSError as e:
            raise InvalidInputError(f"Invalid input: cannot stat {resolved}: {e}")

        if resolved.is_dir():
            raise InvalidInputError("Invalid input: path is a directory, not a file")

        if not os.access(resolved, os.R_OK):
            raise InvalidInputError(f"Invalid input: file is not readable: {resolved}")

        extension = resolved.suffix.lower()
        platform = self.catalog.for_extension(extension)
        if platform is None:
            raise UnknownPlatformError(f"Unknown file extension: {extension or '(none)'}")

        rom = ROMDescriptor(
            id=generate_rom_id(resolved.name),
            path=resolved,
            filename=resolved.name,
            extension=extension,
            size=stat.st_size,
            platform=platform.id,
            metadata={
                'classifiedAt': utc_now_iso(),
                'platformName': platform.name,
            },
        )
        logger.debug(f"Classified {rom.filename} as {platform.id}")
        return rom
