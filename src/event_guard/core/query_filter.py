"""
Event Query Filter Builder

Derives a declarative row predicate from an actor alone, so the persistence
layer never fetches rows the actor could not see. This is a pre-filter only:
can_view_event() stays authoritative and is reapplied to returned rows.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, Any, FrozenSet, Iterable, List, TypeVar

from .auth.actor import ActorContext, Capability
from .auth.policy import can_view_event
from .events import EventSnapshot, EventStatus
from .transitions import VISIBLE_STATES

T = TypeVar("T", bound=EventSnapshot)


class FilterScope(str, Enum):
    """Which rows a filter admits"""
    ALL = "all"                    # No restriction
    OWN_OR_PUBLIC = "own_or_public"  # Chaired by the actor, or publicly visible
    PUBLIC_ONLY = "public_only"    # Publicly visible only


@dataclass(frozen=True)
class EventQueryFilter:
    """Opaque predicate handed to the persistence layer"""
    scope: FilterScope
    chair_id: Optional[str] = None
    statuses: FrozenSet[EventStatus] = field(default_factory=frozenset)

    @property
    def is_unrestricted(self) -> bool:
        return self.scope == FilterScope.ALL

    def matches(self, event: EventSnapshot) -> bool:
        """Evaluate the predicate against a snapshot"""
        if self.scope == FilterScope.ALL:
            return True
        if event.status in self.statuses:
            return True
        return self.scope == FilterScope.OWN_OR_PUBLIC and event.chair_id == self.chair_id

    def to_dict(self) -> Dict[str, Any]:
        """ORM-style where clause"""
        if self.scope == FilterScope.ALL:
            return {}

        status_clause = {"status": {"in": sorted(s.value for s in self.statuses)}}
        if self.scope == FilterScope.PUBLIC_ONLY:
            return status_clause

        return {"OR": [{"chairId": self.chair_id}, status_clause]}


def get_event_query_filter(actor: Optional[ActorContext]) -> EventQueryFilter:
    """Build the pre-filter for an actor (None means anonymous)"""
    if actor is not None and (actor.is_admin or actor.has(Capability.EVENTS_VIEW)):
        return EventQueryFilter(scope=FilterScope.ALL)

    if actor is not None and actor.is_authenticated:
        return EventQueryFilter(
            scope=FilterScope.OWN_OR_PUBLIC,
            chair_id=actor.member_id,
            statuses=VISIBLE_STATES,
        )

    return EventQueryFilter(scope=FilterScope.PUBLIC_ONLY, statuses=VISIBLE_STATES)


def filter_visible_events(events: Iterable[T], actor: Optional[ActorContext]) -> List[T]:
    """Reapply the row-level view check to rows returned by a query"""
    return [event for event in events if can_view_event(actor, event).allowed]
