"""Configuration validation."""

import logging
from typing import Dict, Any, List

logger = logging.getLogger(__name__)


class ValidationError(Exception):
    """Configuration validation errors."""
    pass


def validate_config(config: Dict[str, Any]) -> None:
    """
    Validate configuration structure and values.

    Args:
        config: Configuration dictionary from loader

    Raises:
        ValidationError: If configuration is invalid
    """
    errors = []

    errors.extend(_validate_paths(config.get('paths', {})))
    errors.extend(_validate_pipeline(config.get('pipeline', {})))
    errors.extend(_validate_batch(config.get('batch', {})))
    errors.extend(_validate_logging(config.get('logging', {})))

    if errors:
        raise ValidationError(
            "Configuration validation failed:\n  - " + "\n  - ".join(errors)
        )


def _validate_paths(section: Dict[str, Any]) -> List[str]:
    """Validate paths section."""
    errors = []

    if not isinstance(section, dict):
        return ["paths must be a mapping"]

    for key in ('base', 'archive', 'sync', 'downloads', 'workspace', 'platforms_file'):
        value = section.get(key)
        if value is not None and (not isinstance(value, str) or not value.strip()):
            errors.append(f"paths.{key} must be a non-empty string")

    return errors


def _validate_pipeline(section: Dict[str, Any]) -> List[str]:
    """Validate pipeline phase toggles and policies."""
    errors = []

    if not isinstance(section, dict):
        return ["pipeline must be a mapping"]

    flags = [
        'enable_classifier', 'enable_validator', 'enable_normalizer',
        'enable_archiver', 'enable_promoter', 'enable_thumbnails',
        'enable_chd_conversion',
    ]
    for flag in flags:
        if flag in section and not isinstance(section[flag], bool):
            errors.append(f"pipeline.{flag} must be a boolean")

    valid_policies = ['reject', 'warn']
    for key in ('duplicate_policy', 'missing_bios_policy'):
        if key in section and section[key] not in valid_policies:
            errors.append(
                f"pipeline.{key} must be one of: {', '.join(valid_policies)}"
            )

    return errors


def _validate_batch(section: Dict[str, Any]) -> List[str]:
    """Validate batch policy section."""
    errors = []

    if not isinstance(section, dict):
        return ["batch must be a mapping"]

    positive_ints = [
        'max_batch_size', 'max_file_size', 'concurrency_multiplier',
        'progress_interval',
    ]
    for key in positive_ints:
        if key in section:
            value = section[key]
            if not isinstance(value, int) or isinstance(value, bool) or value < 1:
                errors.append(f"batch.{key} must be a positive integer")

    for key in ('poll_interval', 'cleanup_interval', 'job_retention'):
        if key in section:
            value = section[key]
            if not isinstance(value, (int, float)) or isinstance(value, bool) or value <= 0:
                errors.append(f"batch.{key} must be a positive number")

    if 'processing_strategy' in section:
        valid = ['serial', 'parallel']
        if section['processing_strategy'] not in valid:
            errors.append(
                f"batch.processing_strategy must be one of: {', '.join(valid)}"
            )

    if 'error_handling' in section:
        valid = ['continue_on_error', 'fail_fast']
        if section['error_handling'] not in valid:
            errors.append(
                f"batch.error_handling must be one of: {', '.join(valid)}"
            )

    if 'allowed_extensions' in section:
        extensions = section['allowed_extensions']
        if not isinstance(extensions, list):
            errors.append("batch.allowed_extensions must be a list")
        elif any(not isinstance(e, str) or not e.startswith('.') for e in extensions):
            errors.append("batch.allowed_extensions entries must be strings starting with '.'")

    if 'exclude_dirs' in section:
        excluded = section['exclude_dirs']
        if not isinstance(excluded, list) or any(not isinstance(d, str) for d in excluded):
            errors.append("batch.exclude_dirs must be a list of directory names")

    if 'compute_hashes' in section and not isinstance(section['compute_hashes'], bool):
        errors.append("batch.compute_hashes must be a boolean")

    return errors


def _validate_logging(section: Dict[str, Any]) -> List[str]:
    """Validate logging options section."""
    errors = []

    if not isinstance(section, dict):
        return ["logging must be a mapping"]

    level = section.get('level', 'INFO')
    valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR']
    if level not in valid_levels:
        errors.append(f"logging.level must be one of: {', '.join(valid_levels)}")

    console = section.get('console', True)
    if not isinstance(console, bool):
        errors.append("logging.console must be a boolean")

    if 'file' in section and section['file'] is not None:
        if not isinstance(section['file'], str):
            errors.append("logging.file must be a string path or null")

    return errors
