"""
In-memory batch job queue

Jobs are submitted by the upload collaborator and drained one at a time by
BatchScheduler. The queue owns every job for its whole lifetime; callers
receive the live BatchJob objects and must mutate them only through the
queue's methods.
"""

import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Union

logger = logging.getLogger(__name__)

DEFAULT_JOB_RETENTION = 24 * 60 * 60  # seconds


class JobStatus(str, Enum):
    """Batch job lifecycle states."""
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"                          # every file ingested
    COMPLETED_WITH_ERRORS = "completed_with_errors"  # some files failed
    FAILED = "failed"                                # nothing ingested, or aborted


TERMINAL_STATUSES = frozenset({
    JobStatus.COMPLETED,
    JobStatus.COMPLETED_WITH_ERRORS,
    JobStatus.FAILED,
})

# Status only moves forward
_ALLOWED_TRANSITIONS = {
    JobStatus.QUEUED: {JobStatus.PROCESSING, JobStatus.FAILED},
    JobStatus.PROCESSING: {JobStatus.COMPLETED, JobStatus.COMPLETED_WITH_ERRORS, JobStatus.FAILED},
    JobStatus.COMPLETED: set(),
    JobStatus.COMPLETED_WITH_ERRORS: set(),
    JobStatus.FAILED: set(),
}


class JobStateError(Exception):
    """Illegal job status transition."""
    pass


@dataclass
class BatchFile:
    """One uploaded file waiting in a job."""
    filename: str
    path: str
    size: int = 0

    @classmethod
    def from_value(cls, value: Union['BatchFile', Dict[str, Any]]) -> 'BatchFile':
        if isinstance(value, BatchFile):
            return value
        return cls(
            filename=value['filename'],
            path=str(value['path']),
            size=int(value.get('size', 0)),
        )


@dataclass
class JobProgress:
    processed: int = 0
    total: int = 0


@dataclass
class BatchJob:
    """A submitted collection of files with tracked progress and errors."""
    id: str
    files: List[BatchFile]
    status: JobStatus = JobStatus.QUEUED
    progress: JobProgress = field(default_factory=JobProgress)
    errors: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_dict(self) -> Dict[str, Any]:
        """Status snapshot for pollers."""
        return {
            'id': self.id,
            'status': self.status.value,
            'progress': {
                'processed': self.progress.processed,
                'total': self.progress.total,
            },
            'errors': list(self.errors),
            'files': [
                {'filename': f.filename, 'path': f.path, 'size': f.size}
                for f in self.files
            ],
            'createdAt': self.created_at.isoformat(),
            'startedAt': self.started_at.isoformat() if self.started_at else None,
            'completedAt': self.completed_at.isoformat() if self.completed_at else None,
        }


class BatchQueue:
    """
    Thread-safe job table.

    Example:
        queue = BatchQueue()
        job = queue.create_job([{'filename': 'a.nes', 'path': '/up/a.nes', 'size': 16}])

        claimed = queue.claim_next()          # -> processing
        queue.update_progress(claimed.id, 1)
        queue.update_status(claimed.id, JobStatus.COMPLETED)

        queue.clear_old_jobs(max_age=3600)
    """

    def __init__(self):
        self._jobs: Dict[str, BatchJob] = {}
        self._lock = threading.Lock()

    def create_job(self, files: Iterable[Union[BatchFile, Dict[str, Any]]]) -> BatchJob:
        """Create and queue a new batch job."""
        batch_files = [BatchFile.from_value(f) for f in files]
        job = BatchJob(
            id=str(uuid.uuid4()),
            files=batch_files,
            progress=JobProgress(processed=0, total=len(batch_files)),
        )
        with self._lock:
            self._jobs[job.id] = job

        logger.info(f"Queued batch {job.id} with {len(batch_files)} file(s)")
        return job

    def get_job(self, job_id: str) -> Optional[BatchJob]:
        with self._lock:
            return self._jobs.get(job_id)

    def list_jobs(self) -> List[BatchJob]:
        """All jobs in creation order."""
        with self._lock:
            return list(self._jobs.values())

    def claim_next(self) -> Optional[BatchJob]:
        """
        Move the oldest queued job to processing and return it.

        Returns None when nothing is queued or a job is already processing.
        """
        with self._lock:
            jobs = list(self._jobs.values())
            if any(j.status == JobStatus.PROCESSING for j in jobs):
                return None
            for job in jobs:
                if job.status == JobStatus.QUEUED:
                    self._transition(job, JobStatus.PROCESSING)
                    return job
        return None

    def update_status(self, job_id: str, status: Union[JobStatus, str]) -> Optional[BatchJob]:
        """
        Move a job to a new status.

        started_at and completed_at are stamped on the first entry into
        processing and into a terminal status respectively.

        Raises:
            JobStateError: If the transition would move the job backwards
        """
        status = JobStatus(status)
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return None
            self._transition(job, status)
            return job

    def update_progress(self, job_id: str, processed: int) -> Optional[BatchJob]:
        """Set processed count, clamped to [0, total]."""
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return None
            job.progress.processed = max(0, min(processed, job.progress.total))
            return job

    def add_error(self, job_id: str, error: str) -> Optional[BatchJob]:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return None
            job.errors.append(error)
            return job

    def clear_old_jobs(
        self,
        max_age: Union[float, timedelta] = DEFAULT_JOB_RETENTION,
        now: Optional[datetime] = None,
    ) -> int:
        """
        Evict terminal jobs that finished more than max_age ago.

        Queued and processing jobs are never evicted, whatever their age.

        Args:
            max_age: Retention window in seconds or as a timedelta
            now: Reference time (defaults to current UTC time)

        Returns:
            Number of jobs removed
        """
        if not isinstance(max_age, timedelta):
            max_age = timedelta(seconds=max_age)
        now = now or datetime.now(timezone.utc)

        with self._lock:
            expired = [
                job_id for job_id, job in self._jobs.items()
                if job.is_terminal
                and job.completed_at is not None
                and now - job.completed_at > max_age
            ]
            for job_id in expired:
                del self._jobs[job_id]

        if expired:
            logger.info(f"Cleared {len(expired)} old batch job(s)")
        return len(expired)

    def get_stats(self) -> Dict[str, int]:
        """Job counts by status."""
        with self._lock:
            stats = {status.value: 0 for status in JobStatus}
            for job in self._jobs.values():
                stats[job.status.value] += 1
            return stats

    @staticmethod
    def _transition(job: BatchJob, status: JobStatus) -> None:
        if status == job.status:
            return
        if status not in _ALLOWED_TRANSITIONS[job.status]:
            raise JobStateError(
                f"Job {job.id}: cannot move from {job.status.value} to {status.value}"
            )

        job.status = status
        now = datetime.now(timezone.utc)
        if status == JobStatus.PROCESSING and job.started_at is None:
            job.started_at = now
        if status in TERMINAL_STATUSES and job.completed_at is None:
            job.completed_at = now
