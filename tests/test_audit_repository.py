"""
Test Audit Repository

In-memory and Supabase-style client backends for audit entries.
"""

import pytest
from pydantic import ValidationError
from unittest.mock import MagicMock

from event_guard.data.models.audit import AuditAction, AuditDecision, AuditEntry
from event_guard.data.repos.audit import AuditRepository


def make_entry(resource_id: str = "evt-1", **metadata) -> AuditEntry:
    return AuditEntry(
        action=AuditAction.UPDATE,
        resource_id=resource_id,
        actor={"memberId": "m-1", "role": "member"},
        metadata=metadata,
    )


class TestAuditEntry:
    """Model behavior"""

    def test_wire_aliases_accepted(self):
        entry = AuditEntry(action="DELETE", resourceType="Event", resourceId="evt-3")

        assert entry.resource_id == "evt-3"
        assert entry.action == AuditAction.DELETE

    def test_decision_and_alert_flags(self):
        entry = make_entry(decision="DENIED", reason="No permission", securityAlert=True)

        assert entry.decision == AuditDecision.DENIED
        assert entry.reason == "No permission"
        assert entry.is_security_alert is True

    def test_missing_decision(self):
        assert make_entry().decision is None

    def test_entries_are_frozen(self):
        entry = make_entry()

        with pytest.raises(ValidationError):
            entry.resource_id = "evt-2"

    def test_model_config(self):
        assert "Config" not in vars(AuditEntry)
        assert AuditEntry.model_config["frozen"] is True
        assert AuditEntry.model_config["populate_by_name"] is True
        assert AuditEntry.model_json_schema()["example"]["resourceId"] == "evt-123"


class TestInMemoryRepository:
    """Append-only in-memory store"""

    @pytest.mark.asyncio
    async def test_write_and_list(self):
        repository = AuditRepository()

        await repository.write(make_entry("evt-1"))
        await repository.write(make_entry("evt-2", securityAlert=True))
        await repository.write(make_entry("evt-1"))

        assert await repository.count() == 3
        assert len(await repository.list_entries(resource_id="evt-1")) == 2
        alerts = await repository.list_entries(security_alerts_only=True)
        assert [e.resource_id for e in alerts] == ["evt-2"]

    @pytest.mark.asyncio
    async def test_pagination(self):
        repository = AuditRepository()
        for index in range(5):
            await repository.write(make_entry(f"evt-{index}"))

        page = await repository.list_entries(limit=2, offset=2)

        assert [e.resource_id for e in page] == ["evt-2", "evt-3"]

    def test_no_update_or_delete(self):
        repository = AuditRepository()

        assert not hasattr(repository, "update")
        assert not hasattr(repository, "delete")


class TestClientRepository:
    """Supabase-style table client"""

    @pytest.mark.asyncio
    async def test_insert_uses_wire_names(self):
        client = MagicMock()
        entry = make_entry("evt-5")
        client.table.return_value.insert.return_value.execute.return_value.data = [entry.to_record()]
        repository = AuditRepository(client=client)

        await repository.write(entry)

        client.table.assert_called_with("audit_log")
        inserted = client.table.return_value.insert.call_args[0][0]
        assert inserted["resourceId"] == "evt-5"
        assert inserted["resourceType"] == "Event"

    @pytest.mark.asyncio
    async def test_list_filters_by_wire_name(self):
        client = MagicMock()
        query = client.table.return_value.select.return_value
        query.eq.return_value = query
        query.range.return_value = query
        query.execute.return_value.data = [make_entry("evt-5").to_record()]
        repository = AuditRepository(client=client)

        entries = await repository.list_entries(resource_id="evt-5")

        query.eq.assert_called_with("resourceId", "evt-5")
        query.range.assert_called_with(0, 99)
        assert entries[0].resource_id == "evt-5"
