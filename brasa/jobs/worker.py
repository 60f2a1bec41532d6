"""
Background worker for site generation jobs.

Polls the queue, dispatches each claimed job to its processor and reports
the outcome back to the queue. A periodic sweep hands abandoned processing
jobs back to retry.
"""

import asyncio
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from brasa.database.jobs import JobTrackingService
from brasa.errors import error_message
from brasa.jobs.models import JobStatus, QueueJob
from brasa.jobs.processors import JobProcessors
from brasa.jobs.queue import DEFAULT_STALE_AFTER_MS, JobQueue
from brasa.utils.logging import worker_logger as logger


class SiteWorker:
    """
    Single-threaded polling worker.

    run() loops forever: claim a job, process it, mark it complete or report
    the failure (the queue decides between retry and permanent failure), and
    sleep poll_interval seconds whenever the queue has nothing due.
    """

    def __init__(
        self,
        queue: JobQueue,
        processors: JobProcessors,
        tracking: Optional[JobTrackingService] = None,
        poll_interval_seconds: float = 3.0,
        prune_interval_seconds: int = 60,
        stale_after_ms: int = DEFAULT_STALE_AFTER_MS,
    ):
        self.queue = queue
        self.processors = processors
        self.tracking = tracking or processors.tracking
        self.poll_interval = poll_interval_seconds
        self.prune_interval = prune_interval_seconds
        self.stale_after_ms = stale_after_ms

        self.scheduler = AsyncIOScheduler()
        self._stop_event = asyncio.Event()
        self._current_job_id: str | None = None

    # =========================================================================
    # Job loop
    # =========================================================================

    async def run_once(self) -> bool:
        """
        Claim and process at most one job.

        Returns:
            True if a job was claimed, False if nothing was due
        """
        job = await self.queue.claim_next_job()
        if job is None:
            return False

        self._current_job_id = job.id
        try:
            await self._process(job)
        finally:
            self._current_job_id = None
        return True

    async def _process(self, job: QueueJob):
        logger.info("Processing job", job_id=job.id, kind=job.kind, attempt=job.attempts)

        try:
            await self.tracking.mark_processing(job.id)
            result = await self.processors.process(job.id, job.payload)
            # A store error while completing is a failed attempt like any other
            await self.queue.complete_job(job.id, result.to_dict())
        except Exception as e:
            logger.error("Job failed", job_id=job.id, kind=job.kind, error=error_message(e))
            updated = await self.queue.report_failure(job.id, e)
            if updated is not None and updated.status == JobStatus.FAILED:
                await self.tracking.mark_failed(job.id, updated.last_error or error_message(e))
            return

        logger.info("Job completed", job_id=job.id, kind=job.kind)

    async def run(self):
        """Poll until stop() is called. Store errors outside a job propagate."""
        logger.info("Site worker started", poll_interval=self.poll_interval)

        while not self._stop_event.is_set():
            claimed = await self.run_once()
            if claimed:
                continue

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.poll_interval)
            except asyncio.TimeoutError:
                pass

        logger.info("Site worker stopped")

    def stop(self):
        """Ask run() to exit after the current job."""
        self._stop_event.set()

    # =========================================================================
    # Stale processing sweep
    # =========================================================================

    async def prune_stale(self):
        """
        Sweep the processing index (scheduled every prune_interval seconds).

        Staleness counts from a job's scheduledAt, so after a backlog longer
        than stale_after_ms a freshly claimed job can be re-pended while this
        worker is still running it, and be processed and debited twice. Keep
        stale_after_ms well above the longest expected queue wait.
        """
        recovered = await self.queue.prune_stale_processing(self.stale_after_ms)
        if recovered:
            logger.warning("Recovered stale jobs", count=len(recovered), job_ids=recovered)

    def start(self):
        """Start the periodic stale-job sweep."""
        self.scheduler.add_job(
            self.prune_stale,
            trigger=IntervalTrigger(seconds=self.prune_interval),
            id="prune_stale_processing",
            name="Recover abandoned processing jobs",
            replace_existing=True,
            max_instances=1  # Prevent overlapping sweeps
        )

        self.scheduler.start()
        logger.info("Stale job sweep scheduled", interval=self.prune_interval)

    def shutdown(self):
        """Stop the sweep scheduler"""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)

    @property
    def current_job(self) -> str | None:
        """Get the ID of the currently processing job"""
        return self._current_job_id
