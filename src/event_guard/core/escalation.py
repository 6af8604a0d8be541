"""
Escalation Detector

Classifies denied attempts into known privilege-bypass patterns for security
monitoring. Detection is advisory: enforcement has already happened in the
policy engine, so nothing here may fail the caller's request.

Rules are evaluated in priority order (lower value first). First match wins.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, List, Dict, Any, Callable, Union

from ..data.models.audit import AuditEntry
from ..data.repos.audit import AuditSink
from .auth.actor import ActorContext, Capability, EVENT_CAPABILITIES
from .events import EventSnapshot, EventAction, utcnow
from .guard import GuardResult, audit_action_for
from .transitions import EDITABLE_STATES

logger = logging.getLogger(__name__)

# Real-time monitoring side channel
security_logger = logging.getLogger("event_guard.security")

DEFAULT_CHAIR_ROLE = "event-chair"


class EscalationType(str, Enum):
    """Known bypass patterns"""
    ROLE_BYPASS = "role_bypass"
    CAPABILITY_BYPASS = "capability_bypass"
    OWNERSHIP_BYPASS = "ownership_bypass"
    STATUS_BYPASS = "status_bypass"


@dataclass(frozen=True)
class EscalationAttempt:
    """A denied request matching a bypass pattern"""
    type: EscalationType
    actor: ActorContext
    event: EventSnapshot
    attempted_action: EventAction
    denial_reason: str

    def to_metadata(self) -> Dict[str, Any]:
        return {
            "escalationType": self.type.value,
            "attemptedAction": self.attempted_action.value,
            "denialReason": self.denial_reason,
            "actorRole": self.actor.role,
            "eventStatus": self.event.status.value,
            "isEventChair": self.actor.is_chair_of(self.event.chair_id),
            "securityAlert": True,
        }


@dataclass(frozen=True)
class AttemptContext:
    """Facts a rule condition may inspect"""
    action: EventAction
    actor: ActorContext
    event: EventSnapshot
    denial_reason: str
    chair_role: str


@dataclass
class EscalationRule:
    """One pattern in the rule table"""
    rule_id: str
    pattern: EscalationType
    description: str
    condition: Callable[[AttemptContext], bool]
    priority: int = 100

    def evaluate(self, context: AttemptContext) -> Optional[EscalationType]:
        """
        Evaluate this rule against an attempt.

        Returns:
            The pattern if the rule matches, None otherwise (including when the
            condition itself raises)
        """
        try:
            if self.condition(context):
                logger.debug(f"Escalation rule {self.rule_id} matched: {self.description}")
                return self.pattern
        except Exception as e:
            logger.error(f"Error evaluating escalation rule {self.rule_id}: {e}")

        return None


def _holds_no_event_capability(actor: ActorContext) -> bool:
    return not (actor.capabilities & EVENT_CAPABILITIES)


def default_rules() -> List[EscalationRule]:
    """Built-in bypass patterns"""
    return [
        EscalationRule(
            rule_id="role-bypass-content-edit",
            pattern=EscalationType.ROLE_BYPASS,
            description="Non-chair-scoped actor without any event capability tried to edit content of an event it does not chair",
            condition=lambda ctx: (
                ctx.action == EventAction.EDIT_CONTENT
                and _holds_no_event_capability(ctx.actor)
                and ctx.actor.role != ctx.chair_role
                and not ctx.actor.is_chair_of(ctx.event.chair_id)
            ),
            priority=10,
        ),
        EscalationRule(
            rule_id="capability-bypass-delete",
            pattern=EscalationType.CAPABILITY_BYPASS,
            description="Delete attempted without events:delete",
            condition=lambda ctx: (
                ctx.action == EventAction.DELETE
                and not ctx.actor.has(Capability.EVENTS_DELETE)
            ),
            priority=20,
        ),
        EscalationRule(
            rule_id="ownership-bypass-chair",
            pattern=EscalationType.OWNERSHIP_BYPASS,
            description="Chair-scoped role acted on an event it does not chair",
            condition=lambda ctx: (
                ctx.actor.role == ctx.chair_role
                and not ctx.actor.is_chair_of(ctx.event.chair_id)
                and ctx.action in (EventAction.EDIT_CONTENT, EventAction.EDIT_STATUS)
            ),
            priority=30,
        ),
        EscalationRule(
            rule_id="status-bypass-content-edit",
            pattern=EscalationType.STATUS_BYPASS,
            description="Content edit attempted outside DRAFT/CHANGES_REQUESTED",
            condition=lambda ctx: (
                ctx.action == EventAction.EDIT_CONTENT
                and ctx.event.status not in EDITABLE_STATES
            ),
            priority=40,
        ),
    ]


class EscalationDetector:
    """
    Ordered rule table over denied attempts.

    New patterns are added with add_rule(); existing rules are untouched.
    """

    def __init__(
        self,
        chair_role: str = DEFAULT_CHAIR_ROLE,
        rules: Optional[List[EscalationRule]] = None,
        resource_type: str = "Event",
    ):
        self.chair_role = chair_role
        self.resource_type = resource_type
        self.rules: List[EscalationRule] = []
        for rule in rules if rules is not None else default_rules():
            self.add_rule(rule)

    def add_rule(self, rule: EscalationRule) -> None:
        """Add a rule, keeping priority order"""
        self.rules.append(rule)
        self.rules.sort(key=lambda r: r.priority)

    def detect(
        self,
        action: Union[EventAction, str],
        actor: Optional[ActorContext],
        event: EventSnapshot,
        denial_reason: str,
    ) -> Optional[EscalationAttempt]:
        """Classify a denied attempt; returns at most one attempt"""
        try:
            action = EventAction(action)
        except ValueError:
            logger.warning(f"Escalation detection skipped for unknown action {action!r}")
            return None

        actor = actor if actor is not None else ActorContext.anonymous()
        context = AttemptContext(
            action=action,
            actor=actor,
            event=event,
            denial_reason=denial_reason,
            chair_role=self.chair_role,
        )

        for rule in self.rules:
            pattern = rule.evaluate(context)
            if pattern is not None:
                return EscalationAttempt(
                    type=pattern,
                    actor=actor,
                    event=event,
                    attempted_action=action,
                    denial_reason=denial_reason,
                )
        return None

    async def log_attempt(
        self,
        attempt: EscalationAttempt,
        sink: AuditSink,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """
        Write a securityAlert audit entry and mirror it to the security log.

        Returns:
            True if the audit entry was written
        """
        security_logger.warning(
            f"[SECURITY] Escalation attempt: {attempt.type.value} by {attempt.actor} "
            f"on event {attempt.event.id} ({attempt.attempted_action.value}: {attempt.denial_reason})"
        )

        entry = AuditEntry(
            action=audit_action_for(attempt.attempted_action),
            resource_type=self.resource_type,
            resource_id=attempt.event.id,
            actor=attempt.actor.to_dict(),
            metadata={**(metadata or {}), **attempt.to_metadata()},
            timestamp=utcnow(),
        )
        try:
            await sink.write(entry)
        except Exception as e:
            logger.error(f"Failed to record escalation attempt on event {attempt.event.id}: {e}")
            return False
        return True

    async def inspect(
        self,
        action: Union[EventAction, str],
        actor: Optional[ActorContext],
        event: EventSnapshot,
        result: GuardResult,
        sink: AuditSink,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[EscalationAttempt]:
        """Classify and log a guard result; allowed results are ignored"""
        if result.ok:
            return None

        attempt = self.detect(action, actor, event, result.error or "")
        if attempt is not None:
            await self.log_attempt(attempt, sink, metadata)
        return attempt
