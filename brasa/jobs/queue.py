"""
Durable job queue on top of the key-value store.

State lives in three places, all namespaced by a key prefix:
- <prefix>:job:<id>     one JSON envelope per job
- <prefix>:pending      sorted set, job id -> scheduledAt (epoch ms)
- <prefix>:processing   sorted set, job id -> claim time (epoch ms)

A job id is in at most one of the two sorted sets at any time. Completed and
failed jobs are in neither; their envelopes are kept for auditing.
"""

import asyncio
import time
import uuid
from dataclasses import dataclass
from typing import Any, List, Optional, Union, Dict

from brasa.errors import ErrorKind, classify_error, error_message
from brasa.jobs.models import (
    DEFAULT_MAX_ATTEMPTS,
    JobPayload,
    JobStatus,
    QueueJob,
)
from brasa.store.base import KeyValueStore
from brasa.utils.logging import queue_logger as logger

BASE_BACKOFF_MS = 1000
MAX_BACKOFF_MS = 60_000
DEFAULT_STALE_AFTER_MS = 5 * 60_000
MAX_ATTEMPTS_MESSAGE = "Max attempts reached"


def now_ms() -> int:
    return int(time.time() * 1000)


def compute_backoff_ms(attempts: int) -> int:
    """Delay before a failed job becomes claimable again: min(2^attempts s, 60 s)."""
    return min(2 ** attempts * BASE_BACKOFF_MS, MAX_BACKOFF_MS)


@dataclass(frozen=True)
class QueueKeys:
    """Store keys used by the queue, namespaced so tests can isolate themselves."""
    prefix: str = "queue"

    @property
    def pending(self) -> str:
        return f"{self.prefix}:pending"

    @property
    def processing(self) -> str:
        return f"{self.prefix}:processing"

    def job(self, job_id: str) -> str:
        return f"{self.prefix}:job:{job_id}"


class JobQueue:
    """
    Queue engine: enqueue, claim, complete, fail, retry, stale recovery.

    Every operation is a sequence of single store commands; there is no
    cross-command transaction. Claims made through one JobQueue instance are
    serialised by an asyncio lock, and the reply of the pending-set ZREM
    decides which of several racing workers owns a job.

    Usage:
        queue = JobQueue(get_store())
        job = await queue.enqueue(payload)

        claimed = await queue.claim_next_job()
        await queue.complete_job(claimed.id, {"ok": True})
    """

    def __init__(
        self,
        store: KeyValueStore,
        keys: Optional[QueueKeys] = None,
        clock=now_ms,
        default_max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ):
        self.store = store
        self.keys = keys or QueueKeys()
        self.clock = clock
        self.default_max_attempts = default_max_attempts
        self._claim_lock = asyncio.Lock()

    # =========================================================================
    # Envelope persistence
    # =========================================================================

    async def get_job(self, job_id: str) -> Optional[QueueJob]:
        """Look up a job envelope. No state change."""
        raw = await self.store.get(self.keys.job(job_id))
        if not raw:
            return None
        return QueueJob.from_json(raw)

    async def _save(self, job: QueueJob):
        await self.store.set(self.keys.job(job.id), job.to_json())

    # =========================================================================
    # Enqueue / claim
    # =========================================================================

    async def enqueue(
        self,
        payload: Union[JobPayload, Dict[str, Any]],
        job_id: Optional[str] = None,
        delay_ms: int = 0,
        max_attempts: Optional[int] = None,
    ) -> QueueJob:
        """
        Create a pending job and index it by its ready time.

        Args:
            payload: Typed job payload
            job_id: Caller-supplied id (links the job to a tracking row)
            delay_ms: Milliseconds before the job becomes claimable
            max_attempts: Attempts allowed before permanent failure

        Returns:
            The stored envelope
        """
        job = QueueJob(
            id=job_id or str(uuid.uuid4()),
            payload=payload,
            scheduled_at=self.clock() + (delay_ms or 0),
            attempts=0,
            max_attempts=max_attempts or self.default_max_attempts,
            status=JobStatus.PENDING,
        )

        await self._save(job)
        await self.store.zadd(self.keys.pending, job.scheduled_at, job.id)

        logger.info("Job enqueued", job_id=job.id, kind=job.kind, scheduled_at=job.scheduled_at)
        return job

    async def claim_next_job(self) -> Optional[QueueJob]:
        """
        Claim the earliest-scheduled pending job if it is due.

        Only the head of the pending set is considered. Returns None when the
        queue is empty, the head is not yet due, the head's envelope is
        missing (the orphaned entry is dropped) or another worker removed the
        head first.
        """
        async with self._claim_lock:
            ids = await self.store.zrange(self.keys.pending, 0, 0)
            if not ids:
                return None

            job_id = ids[0]
            job = await self.get_job(job_id)
            if job is None:
                await self.store.zrem(self.keys.pending, job_id)
                logger.warning("Dropped orphaned pending entry", job_id=job_id)
                return None

            claimed_at = self.clock()
            if job.scheduled_at > claimed_at:
                return None

            job.attempts += 1
            job.status = JobStatus.PROCESSING

            removed = await self.store.zrem(self.keys.pending, job_id)
            if not removed:
                logger.info("Job already claimed elsewhere", job_id=job_id)
                return None

            await self.store.zadd(self.keys.processing, claimed_at, job_id)
            await self._save(job)

            logger.info("Job claimed", job_id=job_id, kind=job.kind, attempt=job.attempts)
            return job

    # =========================================================================
    # Outcomes
    # =========================================================================

    async def complete_job(self, job_id: str, result: Any = None):
        """Mark a job completed and drop it from the processing index."""
        job = await self.get_job(job_id)
        if job is None:
            return

        job.status = JobStatus.COMPLETED
        job.result = result

        # Envelope first: a failed write must leave the job in the processing index
        await self._save(job)
        await self.store.zrem(self.keys.processing, job_id)

        logger.info("Job completed", job_id=job_id, attempts=job.attempts)

    async def fail_job(self, job_id: str, error: BaseException | str):
        """
        Record a failure. Usually followed by retry_job, which decides
        whether the job goes back to pending.
        """
        job = await self.get_job(job_id)
        if job is None:
            return

        job.status = JobStatus.FAILED
        _record_error(job, error)

        await self._save(job)
        await self.store.zrem(self.keys.processing, job_id)

    async def retry_job(self, job_id: str):
        """Reschedule with exponential backoff, or fail permanently once attempts are used up."""
        job = await self.get_job(job_id)
        if job is None:
            return

        if job.exhausted:
            _finalize_failed(job)
            await self._save(job)
            await self.store.zrem(self.keys.processing, job_id)
            logger.error(
                "Job permanently failed",
                job_id=job_id,
                attempts=job.attempts,
                error=job.last_error,
            )
            return

        backoff = compute_backoff_ms(job.attempts)
        job.status = JobStatus.PENDING
        job.scheduled_at = self.clock() + backoff

        await self._save(job)
        await self.store.zrem(self.keys.processing, job_id)
        await self.store.zadd(self.keys.pending, job.scheduled_at, job_id)

        logger.info("Job rescheduled", job_id=job_id, attempts=job.attempts, backoff_ms=backoff)

    async def report_failure(self, job_id: str, error: BaseException | str) -> Optional[QueueJob]:
        """
        Record an error and decide pending vs failed in one step.

        Ends in the same state as fail_job followed by retry_job, with one
        envelope write instead of two.
        """
        job = await self.get_job(job_id)
        if job is None:
            return None

        _record_error(job, error)

        if job.exhausted:
            _finalize_failed(job)
            await self._save(job)
            await self.store.zrem(self.keys.processing, job_id)
            logger.error(
                "Job permanently failed",
                job_id=job_id,
                attempts=job.attempts,
                error=job.last_error,
            )
            return job

        backoff = compute_backoff_ms(job.attempts)
        job.status = JobStatus.PENDING
        job.scheduled_at = self.clock() + backoff

        await self._save(job)
        await self.store.zrem(self.keys.processing, job_id)
        await self.store.zadd(self.keys.pending, job.scheduled_at, job_id)

        logger.warning(
            "Job attempt failed, retry scheduled",
            job_id=job_id,
            attempts=job.attempts,
            backoff_ms=backoff,
            error=job.last_error,
        )
        return job

    # =========================================================================
    # Recovery and inspection
    # =========================================================================

    async def prune_stale_processing(self, stale_after_ms: int = DEFAULT_STALE_AFTER_MS) -> List[str]:
        """
        Hand abandoned processing jobs back to retry_job.

        Must run periodically; it is the only recovery path for a job whose
        worker crashed or hung after claiming it.

        Age is measured from the envelope's scheduledAt, not from the claim
        time. A job that waited in pending longer than stale_after_ms is
        therefore eligible as soon as it is claimed, and a sweep landing
        while it still runs hands it to a second worker: its processor runs
        twice and its credits can be debited twice.

        Entries whose envelope already reads completed or failed (the index
        removal after the final write did not happen) are dropped.

        Returns:
            Ids of the jobs that were retried
        """
        ids = await self.store.zrange(self.keys.processing, 0, -1)
        now = self.clock()
        recovered: List[str] = []

        for job_id in ids:
            job = await self.get_job(job_id)
            if job is None or job.status in (JobStatus.COMPLETED, JobStatus.FAILED):
                await self.store.zrem(self.keys.processing, job_id)
                continue

            if now - job.scheduled_at > stale_after_ms:
                logger.warning("Recovering stale job", job_id=job_id, attempts=job.attempts)
                await self.retry_job(job_id)
                recovered.append(job_id)

        return recovered

    async def pending_ids(self) -> List[str]:
        return await self.store.zrange(self.keys.pending, 0, -1)

    async def processing_ids(self) -> List[str]:
        return await self.store.zrange(self.keys.processing, 0, -1)

    async def pending_count(self) -> int:
        """Get the number of pending jobs in the queue"""
        return len(await self.pending_ids())


def _record_error(job: QueueJob, error: BaseException | str):
    if isinstance(error, BaseException):
        job.last_error = error_message(error)
        job.error_kind = classify_error(error)
    else:
        job.last_error = error
        job.error_kind = ErrorKind.TRANSIENT


def _finalize_failed(job: QueueJob):
    job.status = JobStatus.FAILED
    if job.last_error is None:
        job.last_error = MAX_ATTEMPTS_MESSAGE
        job.error_kind = ErrorKind.MAX_ATTEMPTS
