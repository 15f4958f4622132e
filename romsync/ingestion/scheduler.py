"""
Serial batch scheduler

Drains BatchQueue one job at a time, one file at a time. Each file runs
through the pipeline orchestrator on a worker thread so the event loop stays
responsive to notify() and stop().
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from romsync.ingestion.batch_queue import BatchJob, BatchQueue, JobStatus
from romsync.pipeline.orchestrator import PipelineOrchestrator

logger = logging.getLogger(__name__)

ERROR_HANDLING_CONTINUE = 'continue_on_error'
ERROR_HANDLING_FAIL_FAST = 'fail_fast'

INTERRUPTED_MESSAGE = 'Batch interrupted by scheduler shutdown'


class BatchScheduler:
    """
    Background drain loop for queued batch jobs.

    Example:
        scheduler = BatchScheduler(queue, orchestrator, config)
        scheduler.start()

        job = queue.create_job(files)
        scheduler.notify()          # skip the poll wait

        await scheduler.stop()
    """

    def __init__(
        self,
        queue: BatchQueue,
        orchestrator: PipelineOrchestrator,
        config: Dict[str, Any],
    ):
        self.queue = queue
        self.orchestrator = orchestrator

        batch = config.get('batch', {}) or {}
        self.poll_interval = float(batch.get('poll_interval', 5))
        self.cleanup_interval = float(batch.get('cleanup_interval', 24 * 60 * 60))
        self.job_retention = float(batch.get('job_retention', 24 * 60 * 60))
        self.fail_fast = batch.get('error_handling', ERROR_HANDLING_CONTINUE) == ERROR_HANDLING_FAIL_FAST

        self._stop_event: Optional[asyncio.Event] = None
        self._wake_event: Optional[asyncio.Event] = None
        self._tasks: List[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return bool(self._tasks) and not self._stop_event.is_set()

    def start(self) -> None:
        """Spawn the drain loop and the cleanup sweep on the running loop."""
        if self.running:
            logger.debug("Batch scheduler already running")
            return

        self._stop_event = asyncio.Event()
        self._wake_event = asyncio.Event()
        self._tasks = [
            asyncio.create_task(self._drain_loop()),
            asyncio.create_task(self._cleanup_loop()),
        ]
        logger.info(
            f"Batch scheduler started (poll {self.poll_interval}s, "
            f"cleanup every {self.cleanup_interval}s)"
        )

    async def stop(self) -> None:
        """
        Stop both loops immediately.

        A job caught mid-run is marked failed. The file already handed to a
        worker thread finishes in the background, but its result is dropped.
        """
        if not self._tasks:
            return

        self._stop_event.set()
        self._wake_event.set()
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("Batch scheduler stopped")

    def notify(self) -> None:
        """Wake the drain loop now instead of at the next poll."""
        if self._wake_event is not None:
            self._wake_event.set()

    async def run_once(self) -> Optional[BatchJob]:
        """
        Claim and fully process the oldest queued job.

        Returns:
            The processed job, or None if nothing was claimable
        """
        job = self.queue.claim_next()
        if job is None:
            return None
        await self._process_job(job)
        return job

    def sweep(self) -> int:
        """Evict finished jobs older than the retention window."""
        return self.queue.clear_old_jobs(self.job_retention)

    async def _drain_loop(self) -> None:
        while not self._stop_event.is_set():
            job = await self.run_once()
            if job is not None:
                continue

            try:
                await asyncio.wait_for(self._wake_event.wait(), timeout=self.poll_interval)
            except asyncio.TimeoutError:
                pass
            self._wake_event.clear()

    async def _cleanup_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.cleanup_interval)
            except asyncio.TimeoutError:
                self.sweep()

    async def _process_job(self, job: BatchJob) -> None:
        total = len(job.files)
        failures = 0
        aborted = False
        logger.info(f"Processing batch {job.id} ({total} file(s))")

        try:
            for index, batch_file in enumerate(job.files, start=1):
                try:
                    result = await asyncio.to_thread(self.orchestrator.process, batch_file.path)
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    logger.error(f"Unexpected error processing {batch_file.filename}: {e}", exc_info=True)
                    failures += 1
                    self.queue.add_error(job.id, f"{batch_file.filename}: {e}")
                else:
                    if not result.success:
                        failures += 1
                        self.queue.add_error(
                            job.id,
                            f"{batch_file.filename}: {', '.join(result.errors)} (phase: {result.phase})",
                        )

                self.queue.update_progress(job.id, index)

                if failures and self.fail_fast and index < total:
                    self.queue.add_error(
                        job.id, f"Batch aborted after {index} of {total} file(s) (fail_fast)"
                    )
                    aborted = True
                    break
        except asyncio.CancelledError:
            self.queue.add_error(job.id, INTERRUPTED_MESSAGE)
            self.queue.update_status(job.id, JobStatus.FAILED)
            logger.warning(f"Batch {job.id} interrupted")
            raise

        if aborted or (total and failures == total):
            status = JobStatus.FAILED
        elif failures:
            status = JobStatus.COMPLETED_WITH_ERRORS
        else:
            status = JobStatus.COMPLETED

        self.queue.update_status(job.id, status)
        logger.info(
            f"Batch {job.id} {status.value}: {total - failures}/{total} file(s) ingested"
        )
