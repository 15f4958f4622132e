"""Filesystem publication helpers: copies and hard links."""

import errno
import filecmp
import logging
import os
import shutil
import tempfile
from pathlib import Path

from romsync.pipeline.errors import ArchiveIOError

logger = logging.getLogger(__name__)


def copy_file(source: Path, destination: Path) -> Path:
    """
    Copy source to destination, creating parent directories.

    The copy is written to a temporary file beside destination and moved into
    place, so an existing destination (possibly a hard link into a user's
    collection) is replaced rather than written through.

    Raises:
        ArchiveIOError: If the source is missing or destination is not writable
    """
    source = Path(source)
    destination = Path(destination)

    if not source.is_file():
        raise ArchiveIOError(f"Source file not found: {source}")

    tmp_name = None
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{destination.name}.", suffix=".tmp", dir=str(destination.parent)
        )
        os.close(fd)
        shutil.copy2(source, tmp_name)
        os.replace(tmp_name, destination)
        tmp_name = None
    except OSError as e:
        raise ArchiveIOError(f"Failed to copy {source.name} to {destination.parent}: {e}") from e
    finally:
        if tmp_name is not None:
            try:
                os.unlink(tmp_name)
            except OSError:
                logger.debug(f"Could not remove temporary file {tmp_name}")

    return destination


def is_name_collision(source: Path, destination: Path) -> bool:
    """True when destination exists with content different from source."""
    destination = Path(destination)
    if not destination.exists():
        return False
    try:
        if os.path.samefile(source, destination):
            return False
        # An earlier cross-device copy of the same bytes is not a collision
        return not filecmp.cmp(source, destination, shallow=False)
    except OSError:
        return True


def link_or_copy(source: Path, destination: Path) -> bool:
    """
    Publish source at destination as a hard link.

    Hard links cannot cross filesystems; on EXDEV the file is copied instead.
    A destination that already holds the same bytes is left as-is.

    Returns:
        True if destination shares the source's data (linked or already
        present as the same file), False if it is a separate copy

    Raises:
        ArchiveIOError: If destination holds a different file, or neither
            link nor copy succeeds
    """
    source = Path(source)
    destination = Path(destination)

    if destination.exists():
        if is_name_collision(source, destination):
            raise ArchiveIOError(f"Name collision with existing {destination}")
        return os.path.samefile(source, destination)

    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        os.link(source, destination)
        return True
    except FileExistsError:
        # Another worker published the same name first
        if is_name_collision(source, destination):
            raise ArchiveIOError(f"Name collision with existing {destination}")
        return os.path.samefile(source, destination)
    except OSError as e:
        if e.errno != errno.EXDEV:
            raise ArchiveIOError(f"Failed to link {source.name} into {destination.parent}: {e}") from e
        logger.debug(f"Cross-device link for {source.name}, copying instead")

    copy_file(source, destination)
    return False
