"""
Event Lifecycle Transition Tables

Status flow:
    DRAFT -> PENDING_APPROVAL -> APPROVED -> PUBLISHED -> (COMPLETED, derived)
                            \\-> CHANGES_REQUESTED -> PENDING_APPROVAL
    Any cancelable state -> CANCELED

Tables are read-only mappings built at import time. There is no API to
modify them.
"""

from types import MappingProxyType
from typing import FrozenSet, Mapping

from .events import EventStatus

TransitionTable = Mapping[EventStatus, FrozenSet[EventStatus]]


def _freeze(table: dict) -> TransitionTable:
    return MappingProxyType({src: frozenset(dsts) for src, dsts in table.items()})


# Peer-trust tier (events:edit). PUBLISHED -> APPROVED is intentionally absent.
PEER_TRUST_TRANSITIONS: TransitionTable = _freeze({
    EventStatus.DRAFT: {EventStatus.PENDING_APPROVAL},
    EventStatus.PENDING_APPROVAL: {EventStatus.APPROVED, EventStatus.CHANGES_REQUESTED},
    EventStatus.CHANGES_REQUESTED: {EventStatus.PENDING_APPROVAL},
    EventStatus.APPROVED: {EventStatus.PUBLISHED},
})

# Chair-of-record: submit and resubmit only
CHAIR_TRANSITIONS: TransitionTable = _freeze({
    EventStatus.DRAFT: {EventStatus.PENDING_APPROVAL},
    EventStatus.CHANGES_REQUESTED: {EventStatus.PENDING_APPROVAL},
})

CANCELABLE_STATES: FrozenSet[EventStatus] = frozenset({
    EventStatus.DRAFT,
    EventStatus.PENDING_APPROVAL,
    EventStatus.CHANGES_REQUESTED,
    EventStatus.APPROVED,
    EventStatus.PUBLISHED,
})

# Content (non-status) edits are only possible in these states
EDITABLE_STATES: FrozenSet[EventStatus] = frozenset({
    EventStatus.DRAFT,
    EventStatus.CHANGES_REQUESTED,
})

VISIBLE_STATES: FrozenSet[EventStatus] = frozenset({
    EventStatus.PUBLISHED,
    EventStatus.COMPLETED,
})

DERIVED_STATES: FrozenSet[EventStatus] = frozenset({EventStatus.COMPLETED})

# Every status that may be requested as an explicit transition target
TRANSITION_TARGETS: tuple = tuple(s for s in EventStatus if s not in DERIVED_STATES)


def is_table_transition(table: TransitionTable, source: EventStatus, target: EventStatus) -> bool:
    """Check if a table permits source -> target"""
    return target in table.get(source, frozenset())
