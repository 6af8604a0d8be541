"""
Event Authorization

Actor identity and the row-level event policy:
- ActorContext: who is asking, with capabilities resolved once per request
- CapabilityResolver: role -> capability lookup supplied by the caller
- policy: pure decision functions tagged with the invariant they enforce
"""

from .actor import (
    Capability,
    EVENT_CAPABILITIES,
    parse_capability,
    CapabilityResolver,
    StaticCapabilityResolver,
    ActorContext,
    ANONYMOUS_ROLE,
)
from .policy import (
    SecurityInvariant,
    DenialKind,
    PolicyDecision,
    can_view_event,
    can_edit_event_content,
    can_edit_event_status,
    can_delete_event,
    can_register_for_event,
    can_cancel_registration,
    can_perform_admin_override,
    valid_next_states,
    evaluate_action,
    build_event_audit_context,
)

__all__ = [
    # Actor
    "Capability",
    "EVENT_CAPABILITIES",
    "parse_capability",
    "CapabilityResolver",
    "StaticCapabilityResolver",
    "ActorContext",
    "ANONYMOUS_ROLE",
    # Policy
    "SecurityInvariant",
    "DenialKind",
    "PolicyDecision",
    "can_view_event",
    "can_edit_event_content",
    "can_edit_event_status",
    "can_delete_event",
    "can_register_for_event",
    "can_cancel_registration",
    "can_perform_admin_override",
    "valid_next_states",
    "evaluate_action",
    "build_event_audit_context",
]
