"""
Event Guard Core

- events / transitions: lifecycle model and transition tables
- auth: actor context and row-level policy
- query_filter: list-query restriction mirroring the view policy
- guard: audited guard functions
- escalation: bypass-pattern detection over denied attempts
"""

from .errors import EventGuardError, InvalidSnapshotError, UnknownActionError, AuditWriteError
from .events import EventStatus, EventAction, EventSnapshot, effective_status, is_event_completed
from .query_filter import FilterScope, EventQueryFilter, get_event_query_filter, filter_visible_events
from .guard import (
    GuardErrorCode,
    GuardResult,
    GuardOptions,
    BulkStatusResult,
    DeniedEvent,
    EventGuard,
)
from .escalation import EscalationType, EscalationAttempt, EscalationRule, EscalationDetector

__all__ = [
    "EventGuardError",
    "InvalidSnapshotError",
    "UnknownActionError",
    "AuditWriteError",
    "EventStatus",
    "EventAction",
    "EventSnapshot",
    "effective_status",
    "is_event_completed",
    "FilterScope",
    "EventQueryFilter",
    "get_event_query_filter",
    "filter_visible_events",
    "GuardErrorCode",
    "GuardResult",
    "GuardOptions",
    "BulkStatusResult",
    "DeniedEvent",
    "EventGuard",
    "EscalationType",
    "EscalationAttempt",
    "EscalationRule",
    "EscalationDetector",
]
