"""Business logic services package."""

from api.services.audit_store import SqlAuditStore

__all__ = [
    "SqlAuditStore",
]
