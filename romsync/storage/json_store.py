"""
Atomic JSON persistence helpers

Manifests and playlists are rewritten in full on every update. Writes go to
a temporary file in the destination directory and are moved into place with
os.replace, so an interrupted write never leaves a truncated file behind.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, List, Sequence

from romsync.pipeline.errors import ArchiveIOError

logger = logging.getLogger(__name__)

JSON_INDENT = 2


def atomic_write_json(path: Path, data: Any) -> None:
    """
    Serialize data to path atomically.

    Raises:
        ArchiveIOError: If the directory or file cannot be written
    """
    path = Path(path)
    tmp_name = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent)
        )
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=JSON_INDENT, ensure_ascii=False)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
        tmp_name = None
    except OSError as e:
        raise ArchiveIOError(f"Failed to write {path}: {e}") from e
    finally:
        if tmp_name is not None:
            try:
                os.unlink(tmp_name)
            except OSError:
                logger.debug(f"Could not remove temporary file {tmp_name}")


def read_json(path: Path) -> Any:
    """
    Load JSON from path.

    Raises:
        ValueError: If content is not valid JSON
        ArchiveIOError: If the file exists but cannot be read
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(str(e)) from e
    except OSError as e:
        raise ArchiveIOError(f"Failed to read {path}: {e}") from e


def upsert_records(
    records: List[Dict[str, Any]],
    incoming: Sequence[Dict[str, Any]],
    matches: Callable[[Dict[str, Any], Dict[str, Any]], bool],
) -> List[Dict[str, Any]]:
    """
    Merge incoming records into records in place.

    Each incoming record replaces the first existing record it matches and
    drops any further matches, so the result never holds two records that
    match each other. Unmatched records are appended in order.

    Args:
        records: Existing records (mutated)
        incoming: Records to merge, applied in order
        matches: matches(new, existing) -> True when existing must be replaced

    Returns:
        The merged list (same object as records)
    """
    for record in incoming:
        hits = [i for i, existing in enumerate(records) if matches(record, existing)]
        if not hits:
            records.append(record)
            continue
        records[hits[0]] = record
        for index in reversed(hits[1:]):
            del records[index]
    return records
