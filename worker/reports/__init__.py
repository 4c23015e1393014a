"""Report snapshots.

Use explicit imports:
    from worker.reports.snapshot import SnapshotBuilder
"""
