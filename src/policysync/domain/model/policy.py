"""In-memory policy document model.

A policy document is the full access-control object attached to a remote
resource: an ordered list of role bindings plus a version marker. The
document is always transferred as a whole; there is no partial update.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final

from .enums import BindingIntent

# Any operation that affects conditional role bindings must use version 3.
REQUIRED_POLICY_VERSION: Final[int] = 3


@dataclass(slots=True, frozen=True)
class BindingCondition:
    """Condition attached to a binding. Carried through, never evaluated."""

    expression: str
    title: str | None = None
    description: str | None = None


@dataclass(slots=True)
class Binding:
    """A role together with the members holding it."""

    role: str
    members: list[str] = field(default_factory=list[str])
    condition: BindingCondition | None = None

    def has_member(self, member: str) -> bool:
        return member in self.members


@dataclass(slots=True)
class PolicyDocument:
    """Full remote access-control state of one resource."""

    version: int = 0
    bindings: list[Binding] = field(default_factory=list[Binding])

    def bindings_for(self, role: str) -> list[Binding]:
        return [binding for binding in self.bindings if binding.role == role]


@dataclass(slots=True, frozen=True, kw_only=True)
class DesiredBindingSpec:
    """Declared intent: ``member`` should (or should not) hold ``role``."""

    role: str
    member: str
    intent: BindingIntent = BindingIntent.PRESENT

    def __post_init__(self) -> None:
        if not self.role or not self.role.strip():
            raise ValueError("Desired binding requires a non-empty role")
        if not self.member or not self.member.strip():
            raise ValueError("Desired binding requires a non-empty member")

    @property
    def should_be_bound(self) -> bool:
        return self.intent is BindingIntent.PRESENT
