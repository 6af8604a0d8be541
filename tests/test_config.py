"""
Test Configuration

YAML loading, environment interpolation and engine bootstrap.
"""

import logging
from datetime import datetime, timezone

import pytest

from event_guard.config import (
    EngineConfig,
    load_config,
    load_config_from_file,
    create_default_config,
)
from event_guard.config.loader import interpolate_env_vars
from event_guard.core.auth.actor import Capability
from event_guard.core.bootstrap import build_engine, configure_logging
from event_guard.core.events import EventSnapshot, EventStatus
from event_guard.data.repos.audit import AuditRepository


class TestEngineConfig:
    """Schema defaults and validation"""

    def test_defaults(self):
        config = EngineConfig()

        assert config.roles["vp-activities"] == ["events:view", "events:edit"]
        assert config.chair_role == "event-chair"
        assert config.audit.resource_type == "Event"
        assert config.audit.audit_reads is True
        assert config.logging.level == "INFO"

    def test_unknown_capability_rejected(self):
        with pytest.raises(ValueError, match="events:publish"):
            EngineConfig(roles={"editor": ["events:publish"]})

    def test_from_dict_round_trip(self):
        config = EngineConfig.from_dict({
            "roles": {"host": ["events:view"]},
            "chair_role": "host",
            "audit": {"audit_reads": False},
            "logging": {"level": "debug"},
        })

        assert config.roles == {"host": ["events:view"]}
        assert config.audit.audit_reads is False
        assert config.logging.level == "DEBUG"
        assert EngineConfig.from_dict(config.to_dict()).to_dict() == config.to_dict()


class TestConfigLoader:
    """YAML files and environment variables"""

    def test_interpolation_with_default(self, monkeypatch):
        monkeypatch.delenv("EVENT_GUARD_TEST_LEVEL", raising=False)

        assert interpolate_env_vars({"level": "${EVENT_GUARD_TEST_LEVEL:-WARNING}"}) == {"level": "WARNING"}

        monkeypatch.setenv("EVENT_GUARD_TEST_LEVEL", "ERROR")
        assert interpolate_env_vars(["${EVENT_GUARD_TEST_LEVEL:-WARNING}"]) == ["ERROR"]

    def test_required_variable_missing(self, monkeypatch):
        monkeypatch.delenv("EVENT_GUARD_TEST_MISSING", raising=False)

        with pytest.raises(KeyError):
            interpolate_env_vars("${EVENT_GUARD_TEST_MISSING}")

    def test_load_from_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv("EVENT_GUARD_TEST_RESOURCE", "CommunityEvent")
        path = tmp_path / "event_guard.yaml"
        path.write_text(
            "roles:\n"
            "  admin: ['admin:full']\n"
            "  steward: ['events:view', 'events:edit']\n"
            "audit:\n"
            "  resource_type: ${EVENT_GUARD_TEST_RESOURCE}\n"
        )

        config = load_config_from_file(path)

        assert set(config.roles) == {"admin", "steward"}
        assert config.audit.resource_type == "CommunityEvent"

    def test_boolean_from_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("EVENT_GUARD_TEST_AUDIT_READS", "false")
        path = tmp_path / "event_guard.yaml"
        path.write_text("audit:\n  audit_reads: \"${EVENT_GUARD_TEST_AUDIT_READS:-true}\"\n")

        assert load_config_from_file(path).audit.audit_reads is False

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config_from_file(tmp_path / "absent.yaml")

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "event_guard.yaml"
        path.write_text("")

        assert load_config_from_file(path).to_dict() == EngineConfig().to_dict()

    def test_search_config_directory(self, tmp_path):
        (tmp_path / "config").mkdir()
        (tmp_path / "config" / "event_guard.yaml").write_text("chair_role: host\n")

        assert load_config(working_dir=tmp_path).chair_role == "host"

    def test_no_file_found(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        assert load_config().to_dict() == EngineConfig().to_dict()

    def test_default_config_loads(self, tmp_path, monkeypatch):
        monkeypatch.delenv("EVENT_GUARD_LOG_LEVEL", raising=False)

        path = create_default_config(tmp_path / "event_guard.yaml")
        config = load_config_from_file(path)

        assert config.roles == EngineConfig().roles
        assert config.logging.level == "INFO"


class TestBootstrap:
    """Config -> engine wiring"""

    @pytest.mark.asyncio
    async def test_build_engine(self):
        config = EngineConfig.from_dict({
            "roles": {"steward": ["events:edit"]},
            "audit": {"resource_type": "CommunityEvent"},
        })
        engine = build_engine(config)

        steward = engine.actor("m-1", "steward")
        assert steward.has(Capability.EVENTS_EDIT)
        assert not steward.has(Capability.EVENTS_DELETE)

        event = EventSnapshot(
            id="evt-1",
            status=EventStatus.APPROVED,
            start_time=datetime(2030, 1, 1, tzinfo=timezone.utc),
        )
        result = await engine.guard.guard_edit_status(steward, event, EventStatus.PUBLISHED)

        assert result.ok is True
        assert isinstance(engine.sink, AuditRepository)
        entries = await engine.sink.list_entries(resource_id="evt-1")
        assert entries[0].resource_type == "CommunityEvent"

    def test_unknown_role_resolves_to_no_capabilities(self):
        engine = build_engine()

        assert engine.actor("m-1", "visitor").capabilities == frozenset()

    def test_anonymous_actor(self):
        assert build_engine().actor(None, "member").is_authenticated is False

    def test_configure_logging_file(self, tmp_path):
        log_file = tmp_path / "logs" / "event_guard.log"
        config = EngineConfig.from_dict({"logging": {"level": "DEBUG", "file": str(log_file)}})
        root = logging.getLogger()
        handlers = list(root.handlers)
        level = root.level

        try:
            configure_logging(config)
            logging.getLogger("event_guard.test").info("hello from the guard")
        finally:
            for handler in list(root.handlers):
                if handler not in handlers:
                    handler.close()
                    root.removeHandler(handler)
            root.setLevel(level)

        assert "hello from the guard" in log_file.read_text()

    def test_configure_logging_rejects_unknown_level(self):
        config = EngineConfig.from_dict({"logging": {"level": "LOUD"}})

        with pytest.raises(ValueError):
            configure_logging(config)
