"""
Site generation job queue.

Components:
- JobQueue: durable queue on the key-value store (enqueue, claim, retry)
- JobProcessors: one processor per job kind
- SiteWorker: polling worker that ties the two together
- JobSubmitter: validation and enqueueing for API handlers

Usage:
    # In an API handler - queue a job
    from brasa.jobs import JobQueue, JobSubmitter
    from brasa.store import get_store
    submitter = JobSubmitter(JobQueue(get_store()))
    submitted = await submitter.submit_generate_site(user_id, request)

    # As a separate process - run the worker
    python -m brasa.jobs.run_worker
"""

from brasa.jobs.models import (
    JobKind,
    JobStatus,
    QueueJob,
    GenerateSitePayload,
    EditSectionPayload,
    GenerateImagePayload,
    SiteBriefing,
)
from brasa.jobs.queue import JobQueue, QueueKeys, compute_backoff_ms
from brasa.jobs.processors import JobProcessors
from brasa.jobs.worker import SiteWorker
from brasa.jobs.submit import (
    JobSubmitter,
    GenerateSiteRequest,
    EditSectionRequest,
    GenerateImageRequest,
)

__all__ = [
    # Models
    "JobKind",
    "JobStatus",
    "QueueJob",
    "GenerateSitePayload",
    "EditSectionPayload",
    "GenerateImagePayload",
    "SiteBriefing",

    # Queue
    "JobQueue",
    "QueueKeys",
    "compute_backoff_ms",

    # Processing
    "JobProcessors",
    "SiteWorker",

    # Submission
    "JobSubmitter",
    "GenerateSiteRequest",
    "EditSectionRequest",
    "GenerateImageRequest",
]
