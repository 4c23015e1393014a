"""SQLAlchemy models package."""

from api.models.audit import AUDIT_MODELS, DesignAudit, LegacyAudit, SeoAudit
from api.models.lead import Lead
from api.models.report import Report

__all__ = [
    # Lead
    "Lead",
    # Audits
    "LegacyAudit",
    "DesignAudit",
    "SeoAudit",
    "AUDIT_MODELS",
    # Reports
    "Report",
]
