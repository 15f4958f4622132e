"""Content hash calculation for ROM files."""

import hashlib
from pathlib import Path

from romsync.pipeline.errors import HashError

CHUNK_SIZE = 8 * 1024 * 1024  # 8MB chunks for better I/O efficiency


def calculate_hash(file_path: Path) -> str:
    """
    Stream a file through SHA-256.

    The digest is the ROM's identity for de-duplication, so it must be
    deterministic for identical bytes.

    Args:
        file_path: Path to file to hash

    Returns:
        Lowercase hex digest (64 characters)

    Raises:
        HashError: If the file cannot be read
    """
    hasher = hashlib.sha256()
    try:
        with open(file_path, 'rb') as f:
            while True:
                chunk = f.read(CHUNK_SIZE)
                if not chunk:
                    break
                hasher.update(chunk)
    except OSError as e:
        raise HashError(f"Failed to hash {Path(file_path).name}: {e}") from e

    return hasher.hexdigest()


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted string (e.g., "1.5 MB", "750 KB")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):.1f} MB"
    else:
        return f"{size_bytes / (1024 * 1024 * 1024):.2f} GB"
