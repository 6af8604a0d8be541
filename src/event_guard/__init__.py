"""
Event Guard

Authorization and lifecycle guards for community events, with a mandatory
audit trail and escalation detection.
"""

__version__ = "0.1.0"

from .core import (
    EventGuardError,
    InvalidSnapshotError,
    UnknownActionError,
    AuditWriteError,
    EventStatus,
    EventAction,
    EventSnapshot,
    effective_status,
    is_event_completed,
    FilterScope,
    EventQueryFilter,
    get_event_query_filter,
    filter_visible_events,
    GuardErrorCode,
    GuardResult,
    GuardOptions,
    BulkStatusResult,
    DeniedEvent,
    EventGuard,
    EscalationType,
    EscalationAttempt,
    EscalationRule,
    EscalationDetector,
)
from .core.auth import (
    Capability,
    ActorContext,
    CapabilityResolver,
    StaticCapabilityResolver,
    SecurityInvariant,
    PolicyDecision,
)
from .config import EngineConfig, load_config
from .core.bootstrap import EventGuardEngine, build_engine, configure_logging
from .data import AuditAction, AuditEntry, AuditSink, AuditRepository

__all__ = [
    # Errors
    "EventGuardError",
    "InvalidSnapshotError",
    "UnknownActionError",
    "AuditWriteError",
    # Events
    "EventStatus",
    "EventAction",
    "EventSnapshot",
    "effective_status",
    "is_event_completed",
    # Authorization
    "Capability",
    "ActorContext",
    "CapabilityResolver",
    "StaticCapabilityResolver",
    "SecurityInvariant",
    "PolicyDecision",
    # Query filter
    "FilterScope",
    "EventQueryFilter",
    "get_event_query_filter",
    "filter_visible_events",
    # Guards
    "GuardErrorCode",
    "GuardResult",
    "GuardOptions",
    "BulkStatusResult",
    "DeniedEvent",
    "EventGuard",
    # Escalation
    "EscalationType",
    "EscalationAttempt",
    "EscalationRule",
    "EscalationDetector",
    # Audit
    "AuditAction",
    "AuditEntry",
    "AuditSink",
    "AuditRepository",
    # Setup
    "EngineConfig",
    "load_config",
    "EventGuardEngine",
    "build_engine",
    "configure_logging",
]
