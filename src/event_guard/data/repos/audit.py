"""
Audit Repository

The audit sink the guard layer writes to. The guard layer only needs
AuditSink.write(); AuditRepository adds the read side for audit viewers.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

from ..models.audit import AuditEntry
from .base import AppendOnlyRepository, SCAN_LIMIT

logger = logging.getLogger(__name__)


class AuditSink(ABC):
    """Narrow write interface for audit entries."""

    @abstractmethod
    async def write(self, entry: AuditEntry) -> None:
        """Persist one entry. Raise on failure; never drop silently."""


class AuditRepository(AppendOnlyRepository[AuditEntry], AuditSink):
    """Append-only store of audit entries."""

    @property
    def table_name(self) -> str:
        return "audit_log"

    @property
    def model_class(self) -> type[AuditEntry]:
        return AuditEntry

    async def write(self, entry: AuditEntry) -> None:
        await self.append(entry)
        actor = entry.actor.get("email") or entry.actor.get("memberId") or "anonymous"
        logger.info(
            f"[AUDIT] {entry.action.value} {entry.resource_type}/{entry.resource_id} "
            f"by {actor} ({entry.actor.get('role')})"
        )

    async def list_entries(
        self,
        resource_id: Optional[str] = None,
        security_alerts_only: bool = False,
        limit: int = 100,
        offset: int = 0,
    ) -> list[AuditEntry]:
        """List entries for audit viewers."""
        filters: dict[str, Any] = {}
        if resource_id is not None:
            filters["resource_id" if not self.client else "resourceId"] = resource_id

        if not security_alerts_only:
            return await self.list(filters or None, limit, offset)

        entries = await self.list(filters or None, limit=SCAN_LIMIT, offset=0)
        alerts = [e for e in entries if e.is_security_alert]
        return alerts[offset:offset + limit]
