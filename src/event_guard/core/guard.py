"""
Event Action Guards

Wraps every policy decision in a mandatory audit entry:
- The audit write completes before the guard returns (denials included)
- A failed audit write fails the action (AuditWriteError), never allows it
- Results are normalized to GuardResult with a typed error code

All guards share one decision -> audit entry mapping (build_audit_entry);
they differ only in which policy check they call.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any, List, Generic, TypeVar, Union, Callable, Sequence

from ..data.models.audit import AuditAction, AuditDecision, AuditEntry
from ..data.repos.audit import AuditSink
from .auth.actor import ActorContext
from .auth.policy import (
    PolicyDecision,
    DenialKind,
    ActorLike,
    can_view_event,
    can_edit_event_content,
    can_edit_event_status,
    can_delete_event,
    can_register_for_event,
    can_cancel_registration,
    can_perform_admin_override,
    evaluate_action,
    build_event_audit_context,
)
from .errors import AuditWriteError, UnknownActionError
from .events import EventSnapshot, EventStatus, EventAction, utcnow

logger = logging.getLogger(__name__)

T = TypeVar("T")


class GuardErrorCode(str, Enum):
    """Error taxonomy surfaced to the API layer"""
    UNAUTHORIZED = "UNAUTHORIZED"    # No identity where one is required
    FORBIDDEN = "FORBIDDEN"          # Identity present, denied by policy
    NOT_FOUND = "NOT_FOUND"          # Reserved for callers; never produced here
    INVALID_STATE = "INVALID_STATE"  # Denied by lifecycle state


@dataclass(frozen=True)
class GuardResult(Generic[T]):
    """Either ok with data, or not ok with an error message and code"""
    ok: bool
    data: Optional[T] = None
    error: Optional[str] = None
    code: Optional[GuardErrorCode] = None

    @classmethod
    def success(cls, data: T = None) -> "GuardResult[T]":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, error: str, code: GuardErrorCode) -> "GuardResult[T]":
        return cls(ok=False, error=error, code=code)

    def to_dict(self) -> Dict[str, Any]:
        if self.ok:
            data = self.data.to_dict() if hasattr(self.data, "to_dict") else self.data
            return {"ok": True, "data": data}
        return {"ok": False, "error": self.error, "code": self.code.value}


@dataclass
class GuardOptions:
    """Per-call guard options"""
    skip_audit: bool = False  # Honored for read actions only
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DeniedEvent:
    event: EventSnapshot
    reason: str


@dataclass
class BulkStatusResult:
    """Partition of a bulk status change; partial success is normal"""
    allowed: List[EventSnapshot] = field(default_factory=list)
    denied: List[DeniedEvent] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.allowed) + len(self.denied)


READ_ACTIONS = frozenset({EventAction.VIEW, EventAction.VIEW_DETAILS})

AUDIT_UNAVAILABLE_REASON = "Audit log unavailable - action not permitted"


# =========================================================================
# Decision mapping
# =========================================================================

def error_code_for(decision: PolicyDecision) -> GuardErrorCode:
    """Map a denial to the API error taxonomy"""
    if decision.denial == DenialKind.AUTHENTICATION:
        return GuardErrorCode.UNAUTHORIZED
    if decision.denial == DenialKind.STATE:
        return GuardErrorCode.INVALID_STATE
    return GuardErrorCode.FORBIDDEN


def audit_action_for(action: Union[EventAction, str]) -> AuditAction:
    """Map a guarded action to the audit action it is recorded as"""
    mapping = {
        EventAction.VIEW: AuditAction.VIEW,
        EventAction.VIEW_DETAILS: AuditAction.VIEW,
        EventAction.EDIT_CONTENT: AuditAction.UPDATE,
        EventAction.EDIT_STATUS: AuditAction.UPDATE,
        EventAction.DELETE: AuditAction.DELETE,
        EventAction.REGISTER: AuditAction.EVENT_REGISTER,
        EventAction.CANCEL_REGISTRATION: AuditAction.EVENT_CANCEL_REGISTRATION,
    }
    try:
        return mapping[EventAction(action)]
    except ValueError:
        return AuditAction.UPDATE


def build_audit_entry(
    action: Union[EventAction, str],
    actor: ActorLike,
    event: EventSnapshot,
    decision: PolicyDecision,
    resource_type: str = "Event",
    before: Optional[Dict[str, Any]] = None,
    after: Optional[Dict[str, Any]] = None,
    metadata: Optional[Dict[str, Any]] = None,
    extra: Optional[Dict[str, Any]] = None,
    timestamp: Optional[datetime] = None,
    audit_action: Optional[AuditAction] = None,
) -> AuditEntry:
    """
    The single decision -> audit entry mapping used by every guard.

    Caller metadata is applied first so it can never overwrite the
    decision fields.
    """
    actor = actor if actor is not None else ActorContext.anonymous()
    entry_metadata = {
        **(metadata or {}),
        **build_event_audit_context(action, actor, event, decision),
        **(extra or {}),
        "guardAction": getattr(action, "value", action),
        "decision": (AuditDecision.ALLOWED if decision.allowed else AuditDecision.DENIED).value,
    }
    return AuditEntry(
        action=audit_action or audit_action_for(action),
        resource_type=resource_type,
        resource_id=event.id,
        actor=actor.to_dict(),
        before=before,
        after=after,
        metadata=entry_metadata,
        timestamp=timestamp or utcnow(),
    )


def _status_change(event: EventSnapshot, target: EventStatus) -> Dict[str, Any]:
    return {
        "before": {"status": event.status.value},
        "after": {"status": target.value},
        "extra": {
            "targetStatus": target.value,
            "transition": f"{event.status.value} -> {target.value}",
        },
    }


def _status_name(value: Any) -> str:
    return str(getattr(value, "value", value))


def _unsupported_target_reason(target_status: Any) -> str:
    return f"Unsupported target status: {_status_name(target_status)}"


# =========================================================================
# Guard layer
# =========================================================================

class EventGuard:
    """
    Guard functions for every event action.

    Each call evaluates the policy, writes exactly one audit entry, then
    returns a GuardResult.
    """

    def __init__(
        self,
        sink: AuditSink,
        resource_type: str = "Event",
        audit_reads: bool = True,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Args:
            sink: Append-only audit sink
            resource_type: resourceType written on entries
            audit_reads: When False, view guards skip the audit write
            clock: Source of "now" for registration windows and timestamps
        """
        self.sink = sink
        self.resource_type = resource_type
        self.audit_reads = audit_reads
        self.clock = clock

    async def _write(self, entry: AuditEntry) -> None:
        try:
            await self.sink.write(entry)
        except Exception as e:
            logger.error(
                f"Audit write failed for {entry.resource_type}/{entry.resource_id} "
                f"({entry.metadata.get('guardAction')}): {e}"
            )
            raise AuditWriteError(entry.resource_id, e) from e

    def _should_audit(self, action: EventAction, options: GuardOptions) -> bool:
        if action in READ_ACTIONS:
            return self.audit_reads and not options.skip_audit
        if options.skip_audit:
            logger.warning(f"skip_audit ignored for {action.value}: only reads may skip auditing")
        return True

    async def _guard(
        self,
        action: EventAction,
        actor: ActorLike,
        event: EventSnapshot,
        decision: PolicyDecision,
        options: Optional[GuardOptions],
        **change: Any,
    ) -> GuardResult[PolicyDecision]:
        options = options or GuardOptions()
        actor = actor if actor is not None else ActorContext.anonymous()

        if self._should_audit(action, options):
            entry = build_audit_entry(
                action,
                actor,
                event,
                decision,
                resource_type=self.resource_type,
                metadata=options.metadata,
                timestamp=self.clock(),
                **change,
            )
            await self._write(entry)

        if decision.allowed:
            logger.info(
                f"Guard ALLOWED: {action.value} on event {event.id} for {actor} "
                f"[{decision.invariant.value if decision.invariant else '-'}] - {decision.reason}"
            )
            return GuardResult.success(decision)

        logger.warning(
            f"Guard DENIED: {action.value} on event {event.id} for {actor} "
            f"[{decision.invariant.value if decision.invariant else '-'}] - {decision.reason}"
        )
        return GuardResult.failure(decision.reason, error_code_for(decision))

    async def _audit_fault(
        self,
        action: Union[EventAction, str],
        actor: ActorLike,
        event: EventSnapshot,
        reason: str,
        error: Exception,
        options: Optional[GuardOptions],
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Record the denial implied by a malformed request before it is raised"""
        options = options or GuardOptions()
        denial = PolicyDecision(allowed=False, reason=reason)
        await self._write(build_audit_entry(
            action,
            actor,
            event,
            denial,
            resource_type=self.resource_type,
            metadata=options.metadata,
            extra={**(extra or {}), "error": str(error)},
            timestamp=self.clock(),
        ))
        logger.warning(f"Guard FAULT: {getattr(action, 'value', action)} on event {event.id} - {reason}")

    async def guard_view(
        self, actor: ActorLike, event: EventSnapshot, options: Optional[GuardOptions] = None
    ) -> GuardResult[PolicyDecision]:
        decision = can_view_event(actor, event)
        return await self._guard(EventAction.VIEW, actor, event, decision, options)

    async def guard_view_details(
        self, actor: ActorLike, event: EventSnapshot, options: Optional[GuardOptions] = None
    ) -> GuardResult[PolicyDecision]:
        decision = can_view_event(actor, event)
        return await self._guard(EventAction.VIEW_DETAILS, actor, event, decision, options)

    async def guard_edit_content(
        self, actor: ActorLike, event: EventSnapshot, options: Optional[GuardOptions] = None
    ) -> GuardResult[PolicyDecision]:
        decision = can_edit_event_content(actor, event)
        return await self._guard(EventAction.EDIT_CONTENT, actor, event, decision, options)

    async def guard_edit_status(
        self,
        actor: ActorLike,
        event: EventSnapshot,
        target_status: Union[EventStatus, str],
        options: Optional[GuardOptions] = None,
    ) -> GuardResult[PolicyDecision]:
        """Unknown target statuses are audited as denials, then raised"""
        try:
            decision = can_edit_event_status(actor, event, target_status)
        except UnknownActionError as e:
            await self._audit_fault(
                EventAction.EDIT_STATUS, actor, event,
                _unsupported_target_reason(target_status), e, options,
                extra={"targetStatus": _status_name(target_status)},
            )
            raise
        return await self._guard(
            EventAction.EDIT_STATUS, actor, event, decision, options,
            **_status_change(event, EventStatus(target_status)),
        )

    async def guard_delete(
        self, actor: ActorLike, event: EventSnapshot, options: Optional[GuardOptions] = None
    ) -> GuardResult[PolicyDecision]:
        decision = can_delete_event(actor, event)
        return await self._guard(
            EventAction.DELETE, actor, event, decision, options, before=event.to_dict()
        )

    async def guard_register(
        self, actor: ActorLike, event: EventSnapshot, options: Optional[GuardOptions] = None
    ) -> GuardResult[PolicyDecision]:
        decision = can_register_for_event(actor, event, now=self.clock())
        return await self._guard(EventAction.REGISTER, actor, event, decision, options)

    async def guard_cancel_registration(
        self, actor: ActorLike, event: EventSnapshot, options: Optional[GuardOptions] = None
    ) -> GuardResult[PolicyDecision]:
        decision = can_cancel_registration(actor, event, now=self.clock())
        return await self._guard(EventAction.CANCEL_REGISTRATION, actor, event, decision, options)

    async def guard_action(
        self,
        action: Union[EventAction, str],
        actor: ActorLike,
        event: EventSnapshot,
        target_status: Optional[Union[EventStatus, str]] = None,
        options: Optional[GuardOptions] = None,
    ) -> GuardResult[PolicyDecision]:
        """
        Guard an action given by name.

        Unknown actions (or edit_status without a target) are audited as
        denials before UnknownActionError is raised.
        """
        try:
            decision = evaluate_action(action, actor, event, target_status, now=self.clock())
        except UnknownActionError as e:
            await self._audit_fault(
                action, actor, event, f"Unsupported action: {_status_name(action)}", e, options
            )
            raise

        action = EventAction(action)
        change: Dict[str, Any] = {}
        if action == EventAction.EDIT_STATUS:
            change = _status_change(event, EventStatus(target_status))
        elif action == EventAction.DELETE:
            change = {"before": event.to_dict()}
        return await self._guard(action, actor, event, decision, options, **change)

    async def guard_bulk_status_change(
        self,
        actor: ActorLike,
        events: Sequence[EventSnapshot],
        target_status: Union[EventStatus, str],
        options: Optional[GuardOptions] = None,
    ) -> BulkStatusResult:
        """
        Evaluate one target status against many events.

        Every item gets its own audit entry (bulkOperation=True). An item
        whose audit write fails is denied; later items are still audited.
        """
        options = options or GuardOptions()
        try:
            target = EventStatus(target_status)
        except ValueError:
            error = UnknownActionError(f"Unknown target status: {target_status!r}")
            await self._audit_bulk_fault(actor, events, target_status, error, options)
            raise error from None
        result = BulkStatusResult()

        for index, event in enumerate(events):
            decision = can_edit_event_status(actor, event, target)
            change = _status_change(event, target)
            change["extra"].update({"bulkOperation": True, "bulkIndex": index, "bulkSize": len(events)})
            entry = build_audit_entry(
                EventAction.EDIT_STATUS,
                actor,
                event,
                decision,
                resource_type=self.resource_type,
                metadata=options.metadata,
                timestamp=self.clock(),
                **change,
            )

            try:
                await self._write(entry)
            except AuditWriteError:
                result.denied.append(DeniedEvent(event=event, reason=AUDIT_UNAVAILABLE_REASON))
                continue

            if decision.allowed:
                result.allowed.append(event)
            else:
                result.denied.append(DeniedEvent(event=event, reason=decision.reason))

        logger.info(
            f"Bulk status change to {target.value}: {len(result.allowed)} allowed, "
            f"{len(result.denied)} denied"
        )
        return result

    async def _audit_bulk_fault(
        self,
        actor: ActorLike,
        events: Sequence[EventSnapshot],
        target_status: Any,
        error: UnknownActionError,
        options: GuardOptions,
    ) -> None:
        """One denial per event for a bulk change whose target is not a status"""
        for index, event in enumerate(events):
            try:
                await self._audit_fault(
                    EventAction.EDIT_STATUS, actor, event,
                    _unsupported_target_reason(target_status), error, options,
                    extra={
                        "targetStatus": _status_name(target_status),
                        "bulkOperation": True,
                        "bulkIndex": index,
                        "bulkSize": len(events),
                    },
                )
            except AuditWriteError:
                logger.error(f"Bulk fault for event {event.id} could not be audited")

    async def guard_admin_override(
        self,
        action: Union[EventAction, str],
        actor: ActorLike,
        event: EventSnapshot,
        justification: str,
        target_status: Optional[Union[EventStatus, str]] = None,
        options: Optional[GuardOptions] = None,
    ) -> GuardResult[None]:
        """
        Break-glass override. Always audited, whether approved or not.

        Requires admin:full and a non-empty justification. The entry records
        whether the normal policy would have denied the action.
        """
        options = options or GuardOptions()
        actor = actor if actor is not None else ActorContext.anonymous()
        action_name = getattr(action, "value", action)

        normal = None
        try:
            if EventAction(action) != EventAction.EDIT_STATUS or target_status is not None:
                normal = evaluate_action(action, actor, event, target_status, now=self.clock())
        except ValueError:
            pass

        extra = {
            "action": action_name,
            "justification": justification,
            "normalPolicyWouldDeny": (not normal.allowed) if normal else None,
        }

        if not can_perform_admin_override(actor):
            decision = PolicyDecision(
                allowed=False, reason="Admin override requires admin:full capability"
            )
            extra["override"] = "ATTEMPTED"
        elif not justification or not justification.strip():
            decision = PolicyDecision(
                allowed=False, reason="Admin override requires a justification"
            )
            extra["override"] = "ATTEMPTED"
        else:
            decision = PolicyDecision(allowed=True, reason="Admin override with justification")
            extra["override"] = "APPROVED"

        entry = build_audit_entry(
            action_name,
            actor,
            event,
            decision,
            resource_type=self.resource_type,
            metadata=options.metadata,
            extra=extra,
            timestamp=self.clock(),
            audit_action=AuditAction.OVERRIDE,
        )
        await self._write(entry)

        if not decision.allowed:
            logger.warning(f"Admin override DENIED: {action_name} on event {event.id} for {actor} - {decision.reason}")
            return GuardResult.failure(decision.reason, GuardErrorCode.FORBIDDEN)

        logger.warning(
            f"Admin override APPROVED: {action_name} on event {event.id} by {actor} - {justification}"
        )
        return GuardResult.success(None)
