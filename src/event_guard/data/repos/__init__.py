"""Audit sink interface and repositories."""

from .audit import AuditSink, AuditRepository
from .base import AppendOnlyRepository

__all__ = [
    "AuditSink",
    "AuditRepository",
    "AppendOnlyRepository",
]
