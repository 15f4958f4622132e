"""
Pipeline orchestrator

Runs one file through classify -> validate -> normalize -> archive -> promote.
Every phase can be disabled from the pipeline config section. The first
phase that produces errors ends the run, and the result names that phase.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from romsync.config.layout import DirectoryLayout
from romsync.config.platforms import PlatformCatalog, load_catalog
from romsync.pipeline.archiver import Archiver
from romsync.pipeline.classifier import Classifier
from romsync.pipeline.errors import RomSyncError
from romsync.pipeline.normalizer import Normalizer
from romsync.pipeline.promoter import Promoter
from romsync.pipeline.rom_types import PipelineResult, ROMDescriptor
from romsync.pipeline.validator import Validator
from romsync.storage.locks import PathLockRegistry
from romsync.storage.manifest_store import ManifestStore
from romsync.storage.playlist_store import PlaylistStore

logger = logging.getLogger(__name__)

PHASE_CLASSIFIER = 'classifier'
PHASE_VALIDATOR = 'validator'
PHASE_NORMALIZER = 'normalizer'
PHASE_ARCHIVER = 'archiver'
PHASE_PROMOTER = 'promoter'

POLICY_REJECT = 'reject'
POLICY_WARN = 'warn'


class PipelineOrchestrator:
    """
    Sequences the five phases for a single file.

    Example:
        orchestrator = PipelineOrchestrator.from_config(config)
        result = orchestrator.process('/incoming/Game.nes')
        if not result.success:
            print(result.phase, result.errors)
    """

    def __init__(
        self,
        config: Dict[str, Any],
        classifier: Classifier,
        validator: Validator,
        normalizer: Normalizer,
        archiver: Archiver,
        promoter: Promoter,
    ):
        self.config = config
        self.classifier = classifier
        self.validator = validator
        self.normalizer = normalizer
        self.archiver = archiver
        self.promoter = promoter

        pipeline = config.get('pipeline', {}) or {}
        self.enabled = {
            PHASE_CLASSIFIER: pipeline.get('enable_classifier', True),
            PHASE_VALIDATOR: pipeline.get('enable_validator', True),
            PHASE_NORMALIZER: pipeline.get('enable_normalizer', True),
            PHASE_ARCHIVER: pipeline.get('enable_archiver', True),
            PHASE_PROMOTER: pipeline.get('enable_promoter', True),
        }
        self.duplicate_policy = pipeline.get('duplicate_policy', POLICY_REJECT)
        self.missing_bios_policy = pipeline.get('missing_bios_policy', POLICY_REJECT)

    @classmethod
    def from_config(
        cls,
        config: Dict[str, Any],
        catalog: Optional[PlatformCatalog] = None,
        layout: Optional[DirectoryLayout] = None,
        locks: Optional[PathLockRegistry] = None,
    ) -> 'PipelineOrchestrator':
        """
        Wire the default phase implementations.

        Pass the same locks registry the bulk processor uses so both write
        paths serialize on the same manifest and playlist files.
        """
        catalog = catalog if catalog is not None else load_catalog(config)
        layout = layout or DirectoryLayout.from_config(config)
        locks = locks if locks is not None else PathLockRegistry()
        manifests = ManifestStore(layout, locks)
        playlists = PlaylistStore(layout, locks)

        return cls(
            config,
            classifier=Classifier(catalog),
            validator=Validator(catalog, layout, manifests),
            normalizer=Normalizer(config),
            archiver=Archiver(layout, manifests),
            promoter=Promoter(layout, config, playlists),
        )

    def process(self, file_path: Union[str, Path]) -> PipelineResult:
        """Run the complete pipeline for a file."""
        if not self.enabled[PHASE_CLASSIFIER]:
            return PipelineResult(
                success=False,
                errors=['Classifier phase is disabled'],
                phase=PHASE_CLASSIFIER,
            )

        try:
            rom = self.classifier.classify(file_path)
        except RomSyncError as e:
            logger.info(f"Classification failed for {file_path}: {e}")
            return PipelineResult(success=False, errors=[str(e)], phase=PHASE_CLASSIFIER)

        steps = [
            (PHASE_VALIDATOR, self._run_validation_phase),
            (PHASE_NORMALIZER, self._run_normalization_phase),
            (PHASE_ARCHIVER, self._run_archival_phase),
            (PHASE_PROMOTER, self._run_promotion_phase),
        ]

        for phase, run in steps:
            if not self.enabled[phase]:
                logger.debug(f"Phase {phase} disabled, skipping for {rom.filename}")
                continue
            errors = run(rom)
            if errors:
                logger.warning(f"{rom.filename} failed in {phase}: {'; '.join(errors)}")
                return PipelineResult(success=False, rom=rom, errors=errors, phase=phase)

        logger.info(f"Ingested {rom.filename} ({rom.platform})")
        return PipelineResult(success=True, rom=rom, errors=[])

    def _run_validation_phase(self, rom: ROMDescriptor) -> List[str]:
        errors: List[str] = []

        integrity = self.validator.validate_integrity(rom)
        if not integrity.success:
            errors.append(integrity.error or 'Integrity validation failed')
        else:
            # Hashing needs a readable file
            hashed = self.validator.generate_hash(rom)
            if hashed.success and hashed.data:
                rom.hash = hashed.data
            else:
                errors.append(hashed.error or 'Hash generation failed')

        if rom.hash:
            duplicate = self.validator.check_duplicate(rom.hash)
            warnings = duplicate.metadata.get('warnings') or []
            if warnings:
                rom.metadata['manifestWarnings'] = list(warnings)
            if duplicate.data is True:
                match = duplicate.metadata.get('matchedFilename')
                message = (
                    f"Duplicate ROM detected: matches {match} "
                    f"({duplicate.metadata.get('matchedPlatform')})"
                )
                if self.duplicate_policy == POLICY_WARN:
                    logger.warning(f"{rom.filename}: {message}")
                    rom.metadata['duplicateOf'] = match
                else:
                    errors.append(message)

        bios = self.validator.validate_bios_dependencies(rom)
        if not bios.success:
            missing = bios.metadata.get('missing')
            if missing and self.missing_bios_policy == POLICY_WARN:
                logger.warning(f"{rom.filename}: {bios.error}")
                rom.metadata['missingBios'] = list(missing)
            else:
                errors.append(bios.error or 'BIOS validation failed')

        naming = self.validator.validate_naming(rom)
        if not naming.success:
            errors.append(naming.error or 'Naming validation failed')

        companions = self.validator.check_companion_files(rom)
        if companions.success:
            if companions.data:
                rom.metadata['companionFiles'] = [p.name for p in companions.data]
        else:
            logger.warning(f"{rom.filename}: {companions.error}")

        return errors

    def _run_normalization_phase(self, rom: ROMDescriptor) -> List[str]:
        try:
            self.normalizer.apply_naming_pattern(rom)
            rom.metadata.update(self.normalizer.generate_metadata(rom))
        except RomSyncError as e:
            return [str(e)]
        return []

    def _run_archival_phase(self, rom: ROMDescriptor) -> List[str]:
        try:
            self.archiver.archive_rom(rom)
        except RomSyncError as e:
            # Nothing was archived, so no manifest entry may point at it
            return [str(e)]

        errors: List[str] = []
        try:
            self.archiver.store_metadata(rom)
        except RomSyncError as e:
            errors.append(str(e))

        try:
            self.archiver.write_manifest(rom.to_manifest_entry())
        except RomSyncError as e:
            errors.append(str(e))

        return errors

    def _run_promotion_phase(self, rom: ROMDescriptor) -> List[str]:
        try:
            self.promoter.promote_rom(rom)
        except RomSyncError as e:
            return [str(e)]

        errors: List[str] = []
        try:
            self.promoter.update_playlist(rom)
        except RomSyncError as e:
            errors.append(str(e))

        self.promoter.sync_thumbnails(rom)
        return errors
