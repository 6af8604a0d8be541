"""
Interactive Demo of the Event Guard

Walks through the guard layer with the default role map:
- Visibility and list pre-filters per actor
- Chair submission and peer-trust approval
- Delete asymmetry and escalation detection
- Bulk cancellation with per-item audit entries
"""
import asyncio
from datetime import datetime, timedelta, timezone
from pathlib import Path

from event_guard import (
    EventSnapshot,
    EventStatus,
    EventAction,
    build_engine,
    configure_logging,
    get_event_query_filter,
    load_config,
)


def print_section(title: str):
    """Print a section header"""
    print(f"\n{'='*70}")
    print(f"  {title}")
    print(f"{'='*70}\n")


def print_result(label: str, result):
    if result.ok:
        print(f"  ALLOWED  {label}: {result.data.reason}")
    else:
        print(f"  DENIED   {label}: [{result.code.value}] {result.error}")


async def demo():
    """Run the demo"""
    config = load_config(working_dir=Path(__file__).parent)
    configure_logging(config)
    engine = build_engine(config)

    admin = engine.actor("m-admin", "admin", email="admin@example.org")
    vp = engine.actor("m-vp", "vp-activities", email="vp@example.org")
    chair = engine.actor("m-chair", "member", email="chair@example.org")
    member = engine.actor("m-member", "member", email="member@example.org")

    start = datetime.now(timezone.utc) + timedelta(days=14)
    draft = EventSnapshot(id="evt-1", status=EventStatus.DRAFT, start_time=start, chair_id="m-chair")
    published = EventSnapshot(
        id="evt-2",
        status=EventStatus.PUBLISHED,
        start_time=start,
        end_time=start + timedelta(hours=3),
        chair_id="m-chair",
    )

    print_section("Visibility")
    for label, actor in [("anonymous", None), ("member", member), ("chair", chair), ("vp", vp)]:
        print_result(f"{label} views draft", await engine.guard.guard_view(actor, draft))
        print(f"           list filter: {get_event_query_filter(actor).to_dict()}")

    print_section("Lifecycle")
    print_result("chair submits draft", await engine.guard.guard_edit_status(chair, draft, EventStatus.PENDING_APPROVAL))
    pending = EventSnapshot(id="evt-1", status=EventStatus.PENDING_APPROVAL, start_time=start, chair_id="m-chair")
    print_result("chair approves own event", await engine.guard.guard_edit_status(chair, pending, EventStatus.APPROVED))
    print_result("vp approves event", await engine.guard.guard_edit_status(vp, pending, EventStatus.APPROVED))

    print_section("Delete and escalation")
    result = await engine.guard.guard_delete(vp, published)
    print_result("vp deletes published event", result)
    attempt = await engine.detector.inspect(EventAction.DELETE, vp, published, result, engine.sink)
    if attempt:
        print(f"  Escalation: {attempt.type.value}")
    print_result("admin deletes published event", await engine.guard.guard_delete(admin, published))

    print_section("Registration")
    print_result("anonymous registers", await engine.guard.guard_register(None, published))
    print_result("member registers", await engine.guard.guard_register(member, published))

    print_section("Bulk cancellation")
    canceled = EventSnapshot(id="evt-3", status=EventStatus.CANCELED, start_time=start)
    bulk = await engine.guard.guard_bulk_status_change(vp, [draft, published, canceled], EventStatus.CANCELED)
    print(f"  allowed: {[e.id for e in bulk.allowed]}")
    print(f"  denied:  {[(d.event.id, d.reason) for d in bulk.denied]}")

    print_section("Audit trail")
    for entry in await engine.sink.list_entries(limit=100):
        metadata = entry.metadata
        print(
            f"  {entry.action.value:<16} {entry.resource_id:<6} "
            f"{metadata.get('decision', '-'):<8} {metadata.get('reason')}"
        )


if __name__ == "__main__":
    asyncio.run(demo())
