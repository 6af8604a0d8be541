"""
Test Event Query Filter

The list pre-filter must never admit a row can_view_event would deny.
"""

from datetime import datetime, timezone

import pytest

from event_guard.core.auth.actor import ActorContext, StaticCapabilityResolver
from event_guard.core.auth.policy import can_view_event
from event_guard.core.events import EventSnapshot, EventStatus
from event_guard.core.query_filter import (
    FilterScope,
    get_event_query_filter,
    filter_visible_events,
)

RESOLVER = StaticCapabilityResolver({
    "admin": ["admin:full"],
    "vp-activities": ["events:view", "events:edit"],
    "member": [],
})

START = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def make_events():
    events = []
    for index, status in enumerate(EventStatus):
        events.append(EventSnapshot(id=f"evt-own-{index}", status=status, start_time=START, chair_id="m-1"))
        events.append(EventSnapshot(id=f"evt-other-{index}", status=status, start_time=START, chair_id="m-2"))
    return events


class TestEventQueryFilter:
    """One case per actor class"""

    def test_admin_unrestricted(self):
        query = get_event_query_filter(ActorContext.resolve("m-9", "admin", RESOLVER))

        assert query.scope == FilterScope.ALL
        assert query.is_unrestricted is True
        assert query.to_dict() == {}

    def test_view_capability_unrestricted(self):
        query = get_event_query_filter(ActorContext.resolve("m-9", "vp-activities", RESOLVER))

        assert query.scope == FilterScope.ALL

    def test_member_sees_own_or_public(self):
        query = get_event_query_filter(ActorContext.resolve("m-1", "member", RESOLVER))

        assert query.scope == FilterScope.OWN_OR_PUBLIC
        assert query.to_dict() == {
            "OR": [
                {"chairId": "m-1"},
                {"status": {"in": ["COMPLETED", "PUBLISHED"]}},
            ]
        }

    @pytest.mark.parametrize("actor", [None, ActorContext.anonymous()])
    def test_anonymous_public_only(self, actor):
        query = get_event_query_filter(actor)

        assert query.scope == FilterScope.PUBLIC_ONLY
        assert query.to_dict() == {"status": {"in": ["COMPLETED", "PUBLISHED"]}}

    @pytest.mark.parametrize("role,member_id", [
        ("admin", "m-9"),
        ("vp-activities", "m-9"),
        ("member", "m-1"),
        ("member", "m-3"),
        (None, None),
    ])
    def test_filter_agrees_with_view_policy(self, role, member_id):
        """A row passes the filter exactly when can_view_event allows it"""
        actor = ActorContext.resolve(member_id, role, RESOLVER) if role else None
        query = get_event_query_filter(actor)

        for event in make_events():
            assert query.matches(event) == can_view_event(actor, event).allowed, event.id

    def test_filter_visible_events(self):
        actor = ActorContext.resolve("m-1", "member", RESOLVER)

        visible = filter_visible_events(make_events(), actor)

        assert {e.id for e in visible if e.chair_id == "m-2"} == {"evt-other-4", "evt-other-6"}
        assert len([e for e in visible if e.chair_id == "m-1"]) == len(EventStatus)
