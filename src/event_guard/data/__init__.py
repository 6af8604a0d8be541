"""
Data layer for the event guard.

Contains the audit entry model and the append-only audit repository.
"""

from .models import AuditAction, AuditDecision, AuditEntry
from .repos import AuditSink, AuditRepository

__all__ = [
    "AuditAction",
    "AuditDecision",
    "AuditEntry",
    "AuditSink",
    "AuditRepository",
]
