"""Phase 3: naming conventions and descriptive metadata."""

import logging
from typing import Any, Dict

from romsync.pipeline.errors import InvalidInputError
from romsync.pipeline.rom_types import ROMDescriptor, utc_now_iso

logger = logging.getLogger(__name__)


class Normalizer:
    """
    Stateless pass-through that stamps metadata onto descriptors.

    apply_naming_pattern is where naming-convention rewrites go; today it
    leaves the filename untouched.
    """

    def __init__(self, config: Dict[str, Any]):
        self.config = config

    def apply_naming_pattern(self, rom: ROMDescriptor) -> ROMDescriptor:
        self._require_fields(rom)
        rom.metadata['normalizedAt'] = utc_now_iso()
        rom.metadata['originalName'] = rom.filename
        return rom

    def convert_to_chd(self, rom: ROMDescriptor) -> Dict[str, Any]:
        """Disc image conversion hook. Never converts; reports why."""
        self._require_fields(rom)
        enabled = self.config.get('pipeline', {}).get('enable_chd_conversion', False)
        return {
            'converted': False,
            'reason': 'Not yet implemented' if enabled else 'CHD conversion disabled',
        }

    def generate_metadata(self, rom: ROMDescriptor) -> Dict[str, Any]:
        self._require_fields(rom)
        if rom.size < 0:
            raise InvalidInputError("Invalid input: ROM size cannot be negative")

        return {
            'platform': rom.platform,
            'filename': rom.filename,
            'size': rom.size,
            'extension': rom.extension,
            'generatedAt': utc_now_iso(),
        }

    @staticmethod
    def _require_fields(rom: ROMDescriptor) -> None:
        if rom is None:
            raise InvalidInputError("Invalid input: ROM descriptor is required")
        if not rom.filename or not rom.filename.strip():
            raise InvalidInputError("Invalid input: filename is required")
        if not rom.platform or not rom.extension:
            raise InvalidInputError(
                "Invalid input: ROM missing required fields (platform, extension)"
            )
