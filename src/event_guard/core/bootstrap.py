"""
Engine Bootstrap

Wires an EngineConfig into the runtime pieces:
- StaticCapabilityResolver from the configured role map
- AuditRepository (in-memory, or a Supabase-style client)
- EventGuard and EscalationDetector sharing that sink
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from ..config import EngineConfig
from ..data.repos.audit import AuditSink, AuditRepository
from .auth.actor import ActorContext, StaticCapabilityResolver
from .escalation import EscalationDetector
from .guard import EventGuard

logger = logging.getLogger(__name__)


def configure_logging(config: EngineConfig) -> None:
    """Apply the configured level and optional log file to the root logger"""
    level = getattr(logging, config.logging.level.upper(), None)
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {config.logging.level}")

    root = logging.getLogger()
    root.setLevel(level)

    if config.logging.file:
        log_path = Path(config.logging.file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setFormatter(logging.Formatter(config.logging.format))
        root.addHandler(file_handler)
        logger.info(f"Logging to {log_path}")


@dataclass
class EventGuardEngine:
    """The configured engine"""
    config: EngineConfig
    resolver: StaticCapabilityResolver
    sink: AuditSink
    guard: EventGuard
    detector: EscalationDetector

    def actor(self, member_id: Optional[str], role: str, email: Optional[str] = None) -> ActorContext:
        """Resolve an actor against the configured role map"""
        return ActorContext.resolve(member_id, role, self.resolver, email=email)


def build_engine(
    config: Optional[EngineConfig] = None,
    sink: Optional[AuditSink] = None,
    client: Any = None,
) -> EventGuardEngine:
    """
    Build an engine from configuration.

    Args:
        config: Engine configuration (defaults when None)
        sink: Audit sink; an AuditRepository is created when None
        client: Database client for the created AuditRepository
    """
    config = config or EngineConfig()
    resolver = StaticCapabilityResolver(config.roles)
    sink = sink if sink is not None else AuditRepository(client=client)

    guard = EventGuard(
        sink,
        resource_type=config.audit.resource_type,
        audit_reads=config.audit.audit_reads,
    )
    detector = EscalationDetector(
        chair_role=config.chair_role,
        resource_type=config.audit.resource_type,
    )

    logger.info(
        f"Event guard ready: {len(resolver.roles)} roles, "
        f"audit_reads={config.audit.audit_reads}, sink={type(sink).__name__}"
    )
    return EventGuardEngine(
        config=config,
        resolver=resolver,
        sink=sink,
        guard=guard,
        detector=detector,
    )
