"""RQ Worker entrypoint."""

import os
import platform

import structlog
from rq import SimpleWorker, Worker
from rq.job import Job

from api.config import get_settings
from api.logging import setup_logging
from api.sentry import init_sentry
from worker.redis import (
    QUEUE_DEFAULT,
    QUEUE_HIGH,
    QUEUE_LOW,
    get_redis_connection_bytes,
)

logger = structlog.get_logger(__name__)

QUEUES = [QUEUE_HIGH, QUEUE_DEFAULT, QUEUE_LOW]


def on_job_failure(
    job: Job,
    _connection: object,
    _exc_type: type,
    exc_value: Exception,
    _traceback: object,
) -> None:
    """Called when a job fails."""
    logger.error("job_failed", job_id=job.id, func=job.func_name, error=str(exc_value))


def run_worker() -> None:
    """Start the RQ worker."""
    settings = get_settings()
    setup_logging()
    init_sentry()

    logger.info("worker_starting", env=settings.env, queues=QUEUES)

    # Use SimpleWorker on Windows (no os.fork() support)
    worker_class = SimpleWorker if platform.system() == "Windows" else Worker

    worker = worker_class(
        QUEUES,
        connection=get_redis_connection_bytes(),
        name=f"practice-audit-worker-{os.getpid()}",
    )
    worker.push_exc_handler(_exc_handler)
    worker.work(logging_level=settings.log_level)


def _exc_handler(job: Job, exc_type: type, exc_value: Exception, traceback: object) -> bool:
    on_job_failure(job, None, exc_type, exc_value, traceback)
    # Fall through to the default handler, which moves the job to the failed registry
    return True


if __name__ == "__main__":
    run_worker()
