#!/usr/bin/env python3
"""
Standalone site worker process.

Run this as a separate process from the web server. It exits with status 1
on any unrecoverable error so the process supervisor restarts it.

Usage:
    python -m brasa.jobs.run_worker
"""

import asyncio
import signal
import sys

from brasa.config import config
from brasa.jobs.processors import JobProcessors
from brasa.jobs.queue import JobQueue, QueueKeys
from brasa.jobs.worker import SiteWorker
from brasa.store import close_store, get_store
from brasa.utils.logging import configure_logging, worker_logger as logger


def build_worker() -> SiteWorker:
    """Wire a worker from configuration."""
    queue = JobQueue(
        get_store(),
        keys=QueueKeys(prefix=config.QUEUE_KEY_PREFIX),
        default_max_attempts=config.QUEUE_MAX_ATTEMPTS,
    )
    return SiteWorker(
        queue=queue,
        processors=JobProcessors(),
        poll_interval_seconds=config.WORKER_POLL_INTERVAL,
        prune_interval_seconds=config.PRUNE_INTERVAL_SECONDS,
        stale_after_ms=config.STALE_PROCESSING_MS,
    )


async def main() -> int:
    """Run the site worker until a signal arrives. Returns the exit status."""
    configure_logging()

    logger.info(
        "Starting site worker",
        poll_interval=config.WORKER_POLL_INTERVAL,
        queue_prefix=config.QUEUE_KEY_PREFIX,
    )

    worker = build_worker()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, worker.stop)

    try:
        worker.start()
        await worker.run()
        return 0
    except Exception as e:
        logger.critical("Worker exited due to error", error=str(e), job_id=worker.current_job)
        return 1
    finally:
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.remove_signal_handler(sig)
        worker.shutdown()
        await close_store()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
