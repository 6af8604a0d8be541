"""
Event Guard Configuration Schema

Defines the configuration structure for the event guard engine.
All configuration can be specified via event_guard.yaml or environment variables.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..core.auth.actor import parse_capability


def _as_bool(value: Any) -> bool:
    # Interpolated env vars arrive as strings
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _default_roles() -> Dict[str, List[str]]:
    return {
        "admin": ["admin:full", "events:view", "events:edit", "events:delete"],
        "vp-activities": ["events:view", "events:edit"],
        "event-chair": ["events:view"],
        "member": [],
    }


@dataclass
class AuditConfig:
    """Configuration for audit writes"""
    resource_type: str = "Event"
    audit_reads: bool = True  # False lets view guards skip the audit write


@dataclass
class LoggingConfig:
    """Configuration for log output"""
    level: str = "INFO"
    file: Optional[str] = None
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class EngineConfig:
    """
    Central configuration for the event guard.

    Example event_guard.yaml:
    ```yaml
    roles:
      admin: ["admin:full"]
      vp-activities: ["events:view", "events:edit"]
      event-chair: ["events:view"]
      member: []

    chair_role: event-chair

    audit:
      resource_type: Event
      audit_reads: true

    logging:
      level: INFO
      file: ./logs/event_guard.log
    ```

    Transition tables are not configurable.
    """
    # Role -> capability names, used by the static capability resolver
    roles: Dict[str, List[str]] = field(default_factory=_default_roles)

    # Role treated as chair-scoped by the escalation detector
    chair_role: str = "event-chair"

    audit: AuditConfig = field(default_factory=AuditConfig)

    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Additional metadata
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Reject capability names outside the closed set"""
        for role, capabilities in self.roles.items():
            if not isinstance(capabilities, (list, tuple, set, frozenset)):
                raise ValueError(f"Capabilities for role {role!r} must be a list")
            for name in capabilities:
                parse_capability(str(name))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EngineConfig":
        """Create EngineConfig from dictionary (e.g., parsed YAML)"""
        roles = data.get("roles")
        if roles is None:
            roles = _default_roles()
        else:
            roles = {str(role): list(caps or []) for role, caps in roles.items()}

        audit_data = data.get("audit", {}) or {}
        audit_config = AuditConfig(
            resource_type=audit_data.get("resource_type", "Event"),
            audit_reads=_as_bool(audit_data.get("audit_reads", True)),
        )

        logging_data = data.get("logging", {}) or {}
        logging_config = LoggingConfig(
            level=str(logging_data.get("level", "INFO")).upper(),
            file=logging_data.get("file"),
            format=logging_data.get("format", LoggingConfig.format),
        )

        return cls(
            roles=roles,
            chair_role=data.get("chair_role", "event-chair"),
            audit=audit_config,
            logging=logging_config,
            metadata=data.get("metadata", {}) or {},
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary (for serialization)"""
        return {
            "roles": {role: list(caps) for role, caps in self.roles.items()},
            "chair_role": self.chair_role,
            "audit": {
                "resource_type": self.audit.resource_type,
                "audit_reads": self.audit.audit_reads,
            },
            "logging": {
                "level": self.logging.level,
                "file": self.logging.file,
                "format": self.logging.format,
            },
            "metadata": self.metadata,
        }
