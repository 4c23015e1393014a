"""Job service for managing background jobs from the API."""

import uuid
from collections.abc import Sequence

from worker.audit.records import AuditKind
from worker.queue import JobInfo, JobQueue, QueuePriority, get_job_queue
from worker.tasks import run_batch_audit_sync


class JobService:
    """Service for managing background jobs."""

    def __init__(self, queue: JobQueue | None = None):
        self._queue = queue

    @property
    def queue(self) -> JobQueue:
        if self._queue is None:
            self._queue = get_job_queue()
        return self._queue

    def enqueue_batch_audit(
        self,
        lead_ids: Sequence[uuid.UUID],
        kind: AuditKind,
        priority: QueuePriority = QueuePriority.DEFAULT,
    ) -> str:
        """
        Enqueue a batch audit job.

        Args:
            lead_ids: Leads to audit, already validated
            kind: Audit kind for every lead in the batch
            priority: Queue priority

        Returns:
            The job ID
        """
        job = self.queue.enqueue(
            run_batch_audit_sync,
            [str(i) for i in lead_ids],
            kind.value,
            priority=priority,
            job_id=f"batch-audit-{uuid.uuid4()}",
            job_timeout=900,
            meta={
                "lead_ids": [str(i) for i in lead_ids],
                "kind": kind.value,
            },
        )
        return job.id  # type: ignore[no-any-return]

    def get_job_status(self, job_id: str) -> JobInfo | None:
        """Get status of a job by ID."""
        return self.queue.get_job_info(job_id)
