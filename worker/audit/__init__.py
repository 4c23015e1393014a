"""Audit core: locks, detectors, scoring, pipeline and batch orchestration.

Use explicit imports:
    from worker.audit.pipeline import LeadAuditor
    from worker.audit.batch import BatchAuditor
"""
