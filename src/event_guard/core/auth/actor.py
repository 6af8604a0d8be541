"""
Actor Context Model

Identity and authorization facts about the requester:
- Capability: closed set of named permissions the policy engine reasons about
- CapabilityResolver: role -> capability lookup (supplied by the caller)
- ActorContext: member id, role and resolved capability set for one request
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, Any, FrozenSet, Iterable, Mapping


class Capability(str, Enum):
    """Named capabilities relevant to event authorization"""
    ADMIN_FULL = "admin:full"        # Full administrative override
    EVENTS_VIEW = "events:view"      # View all events regardless of status
    EVENTS_EDIT = "events:edit"      # Peer-trust tier: manage all events
    EVENTS_DELETE = "events:delete"  # Hard delete of event rows


EVENT_CAPABILITIES: FrozenSet[Capability] = frozenset(Capability)


def parse_capability(name: str) -> Capability:
    """Parse a capability name, rejecting anything outside the closed set"""
    try:
        return Capability(name)
    except ValueError:
        raise ValueError(f"Unknown capability: {name!r}") from None


class CapabilityResolver(ABC):
    """
    Maps a role identifier to capabilities.

    The authentication layer owns the real mapping; the engine only consumes
    has_capability().
    """

    @abstractmethod
    def has_capability(self, role: str, capability: Capability) -> bool:
        """Check if a role holds a capability"""

    def capabilities_for(self, role: str) -> FrozenSet[Capability]:
        """Resolve the full capability set for a role"""
        return frozenset(c for c in Capability if self.has_capability(role, c))


class StaticCapabilityResolver(CapabilityResolver):
    """
    Resolver backed by a fixed role -> capabilities table.

    admin:full implies every other capability.
    """

    def __init__(self, role_capabilities: Mapping[str, Iterable[str]]):
        self._table: Dict[str, FrozenSet[Capability]] = {
            role: frozenset(parse_capability(str(c)) for c in caps)
            for role, caps in role_capabilities.items()
        }

    def has_capability(self, role: str, capability: Capability) -> bool:
        caps = self._table.get(role, frozenset())
        return Capability.ADMIN_FULL in caps or capability in caps

    @property
    def roles(self) -> list[str]:
        return sorted(self._table)


ANONYMOUS_ROLE = "anonymous"


@dataclass(frozen=True)
class ActorContext:
    """
    Requester identity for the duration of one request.

    member_id is None for unauthenticated actors. Capabilities are resolved
    once, at construction, and never re-derived from the role string.
    """
    member_id: Optional[str]
    role: str
    capabilities: FrozenSet[Capability] = field(default_factory=frozenset)
    email: Optional[str] = None

    @classmethod
    def resolve(
        cls,
        member_id: Optional[str],
        role: str,
        resolver: CapabilityResolver,
        email: Optional[str] = None,
    ) -> "ActorContext":
        """Build an actor, resolving the role's capabilities up front"""
        if member_id is None:
            return cls.anonymous()
        return cls(
            member_id=member_id,
            role=role,
            capabilities=resolver.capabilities_for(role),
            email=email,
        )

    @classmethod
    def anonymous(cls) -> "ActorContext":
        """Create an unauthenticated actor"""
        return cls(member_id=None, role=ANONYMOUS_ROLE)

    @property
    def is_authenticated(self) -> bool:
        return self.member_id is not None

    def has(self, capability: Capability) -> bool:
        """Check a resolved capability; admin:full implies all"""
        return Capability.ADMIN_FULL in self.capabilities or capability in self.capabilities

    @property
    def is_admin(self) -> bool:
        return Capability.ADMIN_FULL in self.capabilities

    def is_chair_of(self, chair_id: Optional[str]) -> bool:
        """Check if this actor is the event's chair-of-record"""
        if not self.is_authenticated or not chair_id:
            return False
        return self.member_id == chair_id

    def to_dict(self) -> Dict[str, Any]:
        """Snapshot for audit entries"""
        return {
            "memberId": self.member_id,
            "role": self.role,
            "email": self.email,
            "capabilities": sorted(c.value for c in self.capabilities),
        }

    def __str__(self) -> str:
        who = self.email or self.member_id or "anonymous"
        return f"{who} ({self.role})"
