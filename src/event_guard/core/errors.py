"""
Event Guard Exceptions

Denials are never raised: they are returned as PolicyDecision / GuardResult
values. The exceptions here cover programmer errors and audit sink outages.
"""


class EventGuardError(Exception):
    """Base class for event guard errors"""


class InvalidSnapshotError(EventGuardError, ValueError):
    """Event snapshot is malformed (unknown status, missing id, bad times)"""


class UnknownActionError(EventGuardError, ValueError):
    """Requested action is not a known EventAction or lacks required arguments"""


class AuditWriteError(EventGuardError):
    """
    The audit sink rejected or failed a write.

    Guards raise this instead of returning a result, so an action is never
    allowed without its audit entry.
    """

    def __init__(self, resource_id: str, cause: Exception):
        self.resource_id = resource_id
        self.cause = cause
        super().__init__(f"Audit write failed for Event/{resource_id}: {cause}")
