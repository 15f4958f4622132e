"""Upload pre-check applied before a batch is queued."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Sequence, Tuple, Union

from romsync.config.platforms import PlatformCatalog
from romsync.ingestion.batch_queue import BatchFile

DEFAULT_MAX_BATCH_SIZE = 100
DEFAULT_MAX_FILE_SIZE = 50 * 1024 * 1024
DEFAULT_ALLOWED_EXTENSIONS = tuple(PlatformCatalog.default().extensions)


@dataclass(frozen=True)
class BatchPolicy:
    """Limits an upload batch must satisfy."""
    max_batch_size: int = DEFAULT_MAX_BATCH_SIZE
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    allowed_extensions: Tuple[str, ...] = DEFAULT_ALLOWED_EXTENSIONS

    @classmethod
    def from_config(
        cls,
        config: Dict[str, Any],
        catalog: Optional[PlatformCatalog] = None,
    ) -> 'BatchPolicy':
        """Unless batch.allowed_extensions is set, allow whatever the catalog recognizes."""
        batch = config.get('batch', {}) or {}
        extensions = batch.get('allowed_extensions')
        if not extensions:
            extensions = catalog.extensions if catalog is not None else DEFAULT_ALLOWED_EXTENSIONS
        return cls(
            max_batch_size=int(batch.get('max_batch_size', DEFAULT_MAX_BATCH_SIZE)),
            max_file_size=int(batch.get('max_file_size', DEFAULT_MAX_FILE_SIZE)),
            allowed_extensions=tuple(ext.lower() for ext in extensions),
        )


@dataclass
class BatchValidation:
    valid: bool
    error: Optional[str] = None


def validate_batch(
    files: Sequence[Union[BatchFile, Dict[str, Any]]],
    policy: BatchPolicy,
) -> BatchValidation:
    """
    Check batch size, then each file's size and extension.

    Stops at the first violation.

    Args:
        files: BatchFile objects or dicts with 'filename' (or 'name') and 'size'
        policy: Limits to enforce

    Returns:
        BatchValidation with the first error message, if any
    """
    if len(files) > policy.max_batch_size:
        return BatchValidation(
            valid=False,
            error=f"Batch size {len(files)} exceeds max batch size of {policy.max_batch_size}",
        )

    for name, size in _name_and_size(files):
        if size > policy.max_file_size:
            return BatchValidation(
                valid=False,
                error=f"File {name} exceeds max file size of {policy.max_file_size} bytes",
            )

        if Path(name).suffix.lower() not in policy.allowed_extensions:
            return BatchValidation(
                valid=False,
                error=(
                    f"File {name} has invalid file extension. "
                    f"Allowed: {', '.join(policy.allowed_extensions)}"
                ),
            )

    return BatchValidation(valid=True)


def _name_and_size(files: Iterable[Union[BatchFile, Dict[str, Any]]]):
    for item in files:
        if isinstance(item, BatchFile):
            yield item.filename, item.size
        else:
            yield item.get('filename') or item.get('name') or '', int(item.get('size', 0))
