"""Data models for the audit trail."""

from .audit import AuditAction, AuditDecision, AuditEntry

__all__ = [
    "AuditAction",
    "AuditDecision",
    "AuditEntry",
]
