"""Background task definitions."""

from worker.tasks.batch import run_batch_audit, run_batch_audit_sync

__all__ = [
    "run_batch_audit",
    "run_batch_audit_sync",
]
