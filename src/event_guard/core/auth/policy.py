"""
Event Row-Level Authorization Policy

Pure decision functions: actor + event snapshot -> PolicyDecision.
No I/O and no mutable state; safe to call from any thread.

Security invariants:
- SI-1: Without events:view, only PUBLISHED/COMPLETED events are visible
- SI-2: The chair-of-record may view/edit their own event and submit it
- SI-3: events:edit (peer trust) may view/edit any event and drive approval
- SI-4: admin:full overrides all other checks
- SI-5: Only admin:full may delete; peer trust is steered to cancellation
- SI-6: Content edits only in DRAFT/CHANGES_REQUESTED, checked before roles
- SI-7: Registration only for PUBLISHED events that have not ended
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any, List, Callable, Union

from ..errors import UnknownActionError
from ..events import EventSnapshot, EventStatus, EventAction
from ..transitions import (
    PEER_TRUST_TRANSITIONS,
    CHAIR_TRANSITIONS,
    CANCELABLE_STATES,
    EDITABLE_STATES,
    VISIBLE_STATES,
    DERIVED_STATES,
    TRANSITION_TARGETS,
    is_table_transition,
)
from .actor import ActorContext, Capability

logger = logging.getLogger(__name__)


class SecurityInvariant(str, Enum):
    """Traceability tag carried by every decision"""
    SI_1 = "SI-1"
    SI_2 = "SI-2"
    SI_3 = "SI-3"
    SI_4 = "SI-4"
    SI_5 = "SI-5"
    SI_6 = "SI-6"
    SI_7 = "SI-7"


class DenialKind(str, Enum):
    """Why a decision was a denial"""
    POLICY = "policy"                  # Identity present, not permitted
    STATE = "state"                    # Lifecycle state forbids the action
    AUTHENTICATION = "authentication"  # No identity where one is required


@dataclass(frozen=True)
class PolicyDecision:
    """Outcome of a single policy check"""
    allowed: bool
    reason: str
    invariant: Optional[SecurityInvariant] = None
    denial: Optional[DenialKind] = None

    @classmethod
    def allow(cls, reason: str, invariant: SecurityInvariant) -> "PolicyDecision":
        return cls(allowed=True, reason=reason, invariant=invariant)

    @classmethod
    def deny(
        cls,
        reason: str,
        invariant: SecurityInvariant,
        denial: DenialKind = DenialKind.POLICY,
    ) -> "PolicyDecision":
        return cls(allowed=False, reason=reason, invariant=invariant, denial=denial)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "allowed": self.allowed,
            "reason": self.reason,
            "invariant": self.invariant.value if self.invariant else None,
        }


ActorLike = Optional[ActorContext]


def _actor(actor: ActorLike) -> ActorContext:
    return actor if actor is not None else ActorContext.anonymous()


def _log(check: str, actor: ActorContext, event: EventSnapshot, decision: PolicyDecision) -> PolicyDecision:
    logger.debug(
        f"{check}: event={event.id} status={event.status.value} actor={actor} "
        f"allowed={decision.allowed} invariant={decision.invariant.value if decision.invariant else None} "
        f"- {decision.reason}"
    )
    return decision


# =========================================================================
# Row policy checks
# =========================================================================

def can_view_event(actor: ActorLike, event: EventSnapshot) -> PolicyDecision:
    """Decide view / view_details"""
    actor = _actor(actor)

    if actor.is_admin:
        decision = PolicyDecision.allow("Admin access", SecurityInvariant.SI_4)
    elif actor.has(Capability.EVENTS_VIEW):
        decision = PolicyDecision.allow("Officer access (events:view)", SecurityInvariant.SI_3)
    elif actor.is_chair_of(event.chair_id):
        decision = PolicyDecision.allow("Event chair access", SecurityInvariant.SI_2)
    elif event.status in VISIBLE_STATES:
        decision = PolicyDecision.allow("Published event visible to all", SecurityInvariant.SI_1)
    else:
        decision = PolicyDecision.deny(
            f"Event in {event.status.value} status is not visible to members",
            SecurityInvariant.SI_1,
        )

    return _log("can_view_event", actor, event, decision)


def can_edit_event_content(actor: ActorLike, event: EventSnapshot) -> PolicyDecision:
    """Decide edit_content. The status gate runs before any role check."""
    actor = _actor(actor)

    if event.status not in EDITABLE_STATES:
        decision = PolicyDecision.deny(
            f"Content editing not allowed in {event.status.value} status",
            SecurityInvariant.SI_6,
            DenialKind.STATE,
        )
    elif actor.is_admin:
        decision = PolicyDecision.allow("Admin access", SecurityInvariant.SI_4)
    elif actor.has(Capability.EVENTS_EDIT):
        decision = PolicyDecision.allow("Peer-trust access (events:edit)", SecurityInvariant.SI_3)
    elif actor.is_chair_of(event.chair_id):
        decision = PolicyDecision.allow("Event chair access", SecurityInvariant.SI_2)
    else:
        decision = PolicyDecision.deny("No permission to edit this event", SecurityInvariant.SI_2)

    return _log("can_edit_event_content", actor, event, decision)


def can_edit_event_status(
    actor: ActorLike,
    event: EventSnapshot,
    target_status: Union[EventStatus, str],
) -> PolicyDecision:
    """Decide edit_status for the transition event.status -> target_status"""
    actor = _actor(actor)
    try:
        target = EventStatus(target_status)
    except ValueError:
        raise UnknownActionError(f"Unknown target status: {target_status!r}") from None

    source = event.status
    transition = f"Cannot transition from {source.value} to {target.value}"

    if target in DERIVED_STATES:
        decision = PolicyDecision.deny(
            f"{transition}: {target.value} is a derived status, not a transition target",
            SecurityInvariant.SI_3,
            DenialKind.STATE,
        )
    elif actor.is_admin:
        decision = PolicyDecision.allow("Admin access", SecurityInvariant.SI_4)
    elif actor.has(Capability.EVENTS_EDIT):
        if target == EventStatus.CANCELED:
            if source in CANCELABLE_STATES:
                decision = PolicyDecision.allow("Peer-trust cancellation", SecurityInvariant.SI_3)
            else:
                decision = PolicyDecision.deny(
                    f"{transition}: event cannot be canceled in {source.value} status",
                    SecurityInvariant.SI_3,
                    DenialKind.STATE,
                )
        elif is_table_transition(PEER_TRUST_TRANSITIONS, source, target):
            decision = PolicyDecision.allow("Peer-trust transition", SecurityInvariant.SI_3)
        else:
            decision = PolicyDecision.deny(transition, SecurityInvariant.SI_3, DenialKind.STATE)
    elif actor.is_chair_of(event.chair_id):
        if is_table_transition(CHAIR_TRANSITIONS, source, target):
            decision = PolicyDecision.allow("Event chair submission", SecurityInvariant.SI_2)
        else:
            decision = PolicyDecision.deny(
                f"{transition} as event chair",
                SecurityInvariant.SI_2,
                DenialKind.STATE,
            )
    else:
        decision = PolicyDecision.deny("No permission to change event status", SecurityInvariant.SI_2)

    return _log("can_edit_event_status", actor, event, decision)


def can_delete_event(actor: ActorLike, event: EventSnapshot) -> PolicyDecision:
    """Decide delete. Peer trust is denied and pointed at cancellation."""
    actor = _actor(actor)

    if actor.is_admin:
        decision = PolicyDecision.allow("Admin delete access", SecurityInvariant.SI_5)
    elif actor.has(Capability.EVENTS_EDIT):
        decision = PolicyDecision.deny(
            "Event managers cannot delete events - use the cancellation workflow instead",
            SecurityInvariant.SI_5,
        )
    else:
        decision = PolicyDecision.deny("Only administrators can delete events", SecurityInvariant.SI_5)

    return _log("can_delete_event", actor, event, decision)


def can_register_for_event(
    actor: ActorLike,
    event: EventSnapshot,
    now: Optional[datetime] = None,
) -> PolicyDecision:
    """Decide register"""
    actor = _actor(actor)

    if event.status != EventStatus.PUBLISHED:
        decision = PolicyDecision.deny(
            "Registration only available for published events", SecurityInvariant.SI_1
        )
    elif event.has_ended(now):
        decision = PolicyDecision.deny("Event has already ended", SecurityInvariant.SI_7)
    elif not actor.is_authenticated:
        decision = PolicyDecision.deny(
            "Authentication required for registration",
            SecurityInvariant.SI_7,
            DenialKind.AUTHENTICATION,
        )
    else:
        decision = PolicyDecision.allow("Registration allowed", SecurityInvariant.SI_7)

    return _log("can_register_for_event", actor, event, decision)


def can_cancel_registration(
    actor: ActorLike,
    event: EventSnapshot,
    now: Optional[datetime] = None,
) -> PolicyDecision:
    """Decide cancel_registration: same window as registration"""
    actor = _actor(actor)

    if event.status != EventStatus.PUBLISHED:
        decision = PolicyDecision.deny(
            "Registrations can only be canceled for published events", SecurityInvariant.SI_1
        )
    elif event.has_ended(now):
        decision = PolicyDecision.deny("Event has already ended", SecurityInvariant.SI_7)
    elif not actor.is_authenticated:
        decision = PolicyDecision.deny(
            "Authentication required to cancel a registration",
            SecurityInvariant.SI_7,
            DenialKind.AUTHENTICATION,
        )
    else:
        decision = PolicyDecision.allow("Registration cancellation allowed", SecurityInvariant.SI_7)

    return _log("can_cancel_registration", actor, event, decision)


def can_perform_admin_override(actor: ActorLike) -> bool:
    """Break-glass overrides require admin:full"""
    return _actor(actor).is_admin


def valid_next_states(actor: ActorLike, event: EventSnapshot) -> List[EventStatus]:
    """Explicit transition targets the actor may request for this event"""
    return [
        status for status in TRANSITION_TARGETS
        if status != event.status and can_edit_event_status(actor, event, status).allowed
    ]


# =========================================================================
# Dispatch
# =========================================================================

def evaluate_action(
    action: Union[EventAction, str],
    actor: ActorLike,
    event: EventSnapshot,
    target_status: Optional[Union[EventStatus, str]] = None,
    now: Optional[datetime] = None,
) -> PolicyDecision:
    """
    Decide any EventAction.

    Raises:
        UnknownActionError: action is not an EventAction, or edit_status
            was requested without a target status
    """
    try:
        action = EventAction(action)
    except ValueError:
        raise UnknownActionError(f"Unknown event action: {action!r}") from None

    if action == EventAction.EDIT_STATUS:
        if target_status is None:
            raise UnknownActionError("edit_status requires a target status")
        return can_edit_event_status(actor, event, target_status)

    checks: Dict[EventAction, Callable[..., PolicyDecision]] = {
        EventAction.VIEW: can_view_event,
        EventAction.VIEW_DETAILS: can_view_event,
        EventAction.EDIT_CONTENT: can_edit_event_content,
        EventAction.DELETE: can_delete_event,
    }
    if action in checks:
        return checks[action](actor, event)
    if action == EventAction.REGISTER:
        return can_register_for_event(actor, event, now)
    return can_cancel_registration(actor, event, now)


def build_event_audit_context(
    action: Union[EventAction, str],
    actor: ActorLike,
    event: EventSnapshot,
    decision: PolicyDecision,
) -> Dict[str, Any]:
    """Decision facts recorded on every guard audit entry"""
    actor = _actor(actor)
    return {
        "action": getattr(action, "value", action),
        "eventId": event.id,
        "eventStatus": event.status.value,
        "actorId": actor.member_id,
        "actorRole": actor.role,
        "isEventChair": actor.is_chair_of(event.chair_id),
        "allowed": decision.allowed,
        "reason": decision.reason,
        "invariant": decision.invariant.value if decision.invariant else None,
    }
