"""
Event Snapshot Model

Read-only projection of an event row: the minimum facts the policy engine
needs to decide an action. Built by the persistence layer per request.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional, Dict, Any

from .errors import InvalidSnapshotError


class EventStatus(str, Enum):
    """Event lifecycle states"""
    DRAFT = "DRAFT"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    CHANGES_REQUESTED = "CHANGES_REQUESTED"
    APPROVED = "APPROVED"
    PUBLISHED = "PUBLISHED"
    CANCELED = "CANCELED"
    COMPLETED = "COMPLETED"  # Derived from time, never a transition target


class EventAction(str, Enum):
    """Actions the policy engine can decide"""
    VIEW = "view"
    VIEW_DETAILS = "view_details"
    EDIT_CONTENT = "edit_content"
    EDIT_STATUS = "edit_status"
    DELETE = "delete"
    REGISTER = "register"
    CANCEL_REGISTRATION = "cancel_registration"


# Published events without an end time are assumed to run this long
DEFAULT_EVENT_DURATION = timedelta(hours=2)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _parse_time(value: Any, field_name: str) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            pass
    raise InvalidSnapshotError(f"Invalid {field_name}: {value!r}")


@dataclass(frozen=True)
class EventSnapshot:
    """
    Row-level facts about one event.

    Naive datetimes are taken to be UTC. The engine never mutates a snapshot.
    """
    id: str
    status: EventStatus
    start_time: datetime
    chair_id: Optional[str] = None
    group_id: Optional[str] = None
    end_time: Optional[datetime] = None

    def __post_init__(self):
        if not self.id or not isinstance(self.id, str):
            raise InvalidSnapshotError("Event snapshot requires a non-empty id")

        try:
            status = EventStatus(self.status)
        except ValueError:
            raise InvalidSnapshotError(
                f"Event {self.id}: unknown status {self.status!r}"
            ) from None
        object.__setattr__(self, "status", status)

        if not isinstance(self.start_time, datetime):
            raise InvalidSnapshotError(f"Event {self.id}: start_time must be a datetime")
        object.__setattr__(self, "start_time", _as_utc(self.start_time))

        if self.end_time is not None:
            if not isinstance(self.end_time, datetime):
                raise InvalidSnapshotError(f"Event {self.id}: end_time must be a datetime")
            end_time = _as_utc(self.end_time)
            if end_time < self.start_time:
                raise InvalidSnapshotError(f"Event {self.id}: end_time precedes start_time")
            object.__setattr__(self, "end_time", end_time)

    @property
    def registration_deadline(self) -> datetime:
        """Registration closes at the end time, or the start time if none is set"""
        return self.end_time or self.start_time

    def has_ended(self, now: Optional[datetime] = None) -> bool:
        now = _as_utc(now) if now else utcnow()
        return now > self.registration_deadline

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EventSnapshot":
        """Build a snapshot from a persistence-layer row (camelCase or snake_case keys)"""
        def pick(*keys):
            for key in keys:
                if key in data:
                    return data[key]
            return None

        start_time = _parse_time(pick("start_time", "startTime"), "start_time")
        if start_time is None:
            raise InvalidSnapshotError(f"Event {data.get('id')}: start_time is required")

        return cls(
            id=data.get("id"),
            status=data.get("status"),
            start_time=start_time,
            chair_id=pick("chair_id", "chairId", "eventChairId"),
            group_id=pick("group_id", "groupId", "committeeId"),
            end_time=_parse_time(pick("end_time", "endTime"), "end_time"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "status": self.status.value,
            "chairId": self.chair_id,
            "groupId": self.group_id,
            "startTime": self.start_time.isoformat(),
            "endTime": self.end_time.isoformat() if self.end_time else None,
        }


def effective_status(event: EventSnapshot, now: Optional[datetime] = None) -> EventStatus:
    """
    Get the status an event presents, deriving COMPLETED.

    A PUBLISHED event whose end time has passed is COMPLETED.
    """
    if event.status != EventStatus.PUBLISHED:
        return event.status

    now = _as_utc(now) if now else utcnow()
    end_time = event.end_time or event.start_time + DEFAULT_EVENT_DURATION
    if now > end_time:
        return EventStatus.COMPLETED
    return EventStatus.PUBLISHED


def is_event_completed(event: EventSnapshot, now: Optional[datetime] = None) -> bool:
    return effective_status(event, now) == EventStatus.COMPLETED
