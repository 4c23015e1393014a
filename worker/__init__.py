"""Practice Audit - Worker Package.

Use explicit imports, e.g. ``from worker.queue import get_job_queue``.
"""
