"""
Audit module - Append-only trail of administrative changes.
"""

from schoolhub.modules.audit.models import AuditAction, AuditLog, AuditResource
from schoolhub.modules.audit.service import AuditTrail

__all__ = ["AuditAction", "AuditLog", "AuditResource", "AuditTrail"]
