"""Error taxonomy shared by the diff engine, the driver and the adapters."""

from __future__ import annotations


class PolicySyncError(RuntimeError):
    """Base class for all policy reconciliation errors."""


class StructuralPolicyError(PolicySyncError):
    """Raised when an observed policy document is malformed.

    Examples are duplicate role entries or conditional bindings on a document
    that does not declare the conditional-binding version. The engine never
    guesses which entry is authoritative.
    """


class PolicyNotFoundError(PolicySyncError):
    """Raised by transports when the target resource has no policy (or does not exist)."""

    def __init__(self, resource_id: str) -> None:
        super().__init__(f"No policy found for resource {resource_id!r}")
        self.resource_id = resource_id


class TransportError(PolicySyncError):
    """Raised by transports for any failed fetch or write other than not-found."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ReconcileError(PolicySyncError):
    """Wraps a failure with the reconcile phase and resource it happened in."""

    def __init__(self, message: str, *, phase: str, resource_id: str) -> None:
        super().__init__(f"{message} (phase={phase}, resource={resource_id})")
        self.phase = phase
        self.resource_id = resource_id


class DeclarationNotFoundError(PolicySyncError, LookupError):
    """Raised when no declaration matches a resource/role/member triple."""

    def __init__(self, resource_id: str, role: str, member: str) -> None:
        super().__init__(f"No declaration of {role} for {member} on {resource_id!r}")
        self.resource_id = resource_id
        self.role = role
        self.member = member
