"""
Audit Models

Append-only audit entries written by the guard layer. Field names (camelCase
on the wire) are a stable contract for audit viewers.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


class AuditAction(str, Enum):
    """Kind of action an audit entry records."""
    VIEW = "VIEW"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    EVENT_REGISTER = "EVENT_REGISTER"
    EVENT_CANCEL_REGISTRATION = "EVENT_CANCEL_REGISTRATION"
    OVERRIDE = "OVERRIDE"


class AuditDecision(str, Enum):
    """Guard outcome recorded in entry metadata."""
    ALLOWED = "ALLOWED"
    DENIED = "DENIED"


class AuditEntry(BaseModel):
    """
    One audit record.

    Entries are immutable once built; repositories only append them.
    """
    id: UUID = Field(default_factory=uuid4)
    action: AuditAction
    resource_type: str = Field(default="Event", alias="resourceType")
    resource_id: str = Field(alias="resourceId")
    actor: dict[str, Any] = Field(default_factory=dict)
    before: Optional[dict[str, Any]] = None
    after: Optional[dict[str, Any]] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def decision(self) -> Optional[AuditDecision]:
        """ALLOWED/DENIED flag, if the entry carries one."""
        value = self.metadata.get("decision")
        return AuditDecision(value) if value in AuditDecision._value2member_map_ else None

    @property
    def reason(self) -> Optional[str]:
        return self.metadata.get("reason")

    @property
    def is_security_alert(self) -> bool:
        return bool(self.metadata.get("securityAlert"))

    def to_record(self) -> dict[str, Any]:
        """Serialize with wire field names."""
        return self.model_dump(mode="json", by_alias=True)

    model_config = ConfigDict(
        populate_by_name=True,
        frozen=True,
        json_schema_extra={
            "example": {
                "id": "550e8400-e29b-41d4-a716-446655440300",
                "action": "UPDATE",
                "resourceType": "Event",
                "resourceId": "evt-123",
                "actor": {"memberId": "m-42", "role": "vp-activities"},
                "before": {"status": "PENDING_APPROVAL"},
                "after": {"status": "APPROVED"},
                "metadata": {"decision": "ALLOWED", "invariant": "SI-3"},
                "timestamp": "2025-01-01T12:00:00Z",
            }
        },
    )
