"""Per-file locks guarding manifest and playlist read-modify-write cycles."""

import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator

logger = logging.getLogger(__name__)


class PathLockRegistry:
    """
    Hands out one lock per resolved file path.

    Every writer of a manifest or playlist, whether the bulk processor's
    write pass or a queued pipeline run, must hold the file's lock for the
    whole load-upsert-write cycle. Share a single registry between the two
    so they serialize on the same locks.

    Locks are threading locks: writers run on worker threads, never on the
    event loop.
    """

    def __init__(self):
        self._locks: Dict[Path, threading.Lock] = {}
        self._guard = threading.Lock()

    def lock_for(self, path: Path) -> threading.Lock:
        key = Path(path).resolve()
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, path: Path) -> Iterator[None]:
        lock = self.lock_for(path)
        if not lock.acquire(blocking=False):
            logger.debug(f"Waiting for lock on {Path(path).name}")
            lock.acquire()
        try:
            yield
        finally:
            lock.release()
