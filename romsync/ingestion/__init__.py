"""Batch ingestion: bulk directory processing and the serial upload queue."""

from romsync.ingestion.batch_processor import BatchProcessor, BatchResult, ProcessedFile
from romsync.ingestion.batch_queue import BatchFile, BatchJob, BatchQueue, JobStateError, JobStatus
from romsync.ingestion.batch_validator import BatchPolicy, BatchValidation, validate_batch
from romsync.ingestion.scheduler import BatchScheduler

__all__ = [
    'BatchProcessor',
    'BatchResult',
    'ProcessedFile',
    'BatchFile',
    'BatchJob',
    'BatchQueue',
    'JobStateError',
    'JobStatus',
    'BatchPolicy',
    'BatchValidation',
    'validate_batch',
    'BatchScheduler',
]
