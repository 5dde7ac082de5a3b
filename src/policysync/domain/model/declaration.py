"""Managed binding declarations and their reconcile status."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import UUID, uuid4

from .enums import BindingIntent, ConditionReason, ConditionType
from .policy import DesiredBindingSpec


def new_id() -> UUID:
    return uuid4()


def utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True, frozen=True, kw_only=True)
class Condition:
    """Latest observed status of one aspect of a declaration."""

    type: ConditionType
    status: bool
    reason: ConditionReason
    message: str = ""
    last_transition_time: datetime = field(default_factory=utcnow)


@dataclass(eq=False, kw_only=True)
class BindingDeclaration:
    """Declared role binding on one remote resource, plus its reconcile status."""

    id: UUID = field(default_factory=new_id)
    resource_id: str
    role: str
    member: str
    intent: BindingIntent = BindingIntent.PRESENT
    deletion_requested: bool = False

    conditions: list[Condition] = field(default_factory=list[Condition])
    failure_count: int = 0
    not_converged_count: int = 0
    last_error: str | None = None
    next_attempt_at: datetime | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        if not self.resource_id or not self.resource_id.strip():
            raise ValueError("Declaration requires a non-empty resource id")
        # validates role/member
        self.to_spec()

    def to_spec(self) -> DesiredBindingSpec:
        return DesiredBindingSpec(role=self.role, member=self.member, intent=self.intent)

    def condition(self, condition_type: ConditionType) -> Condition | None:
        for condition in self.conditions:
            if condition.type is condition_type:
                return condition
        return None

    def set_condition(
        self,
        condition_type: ConditionType,
        *,
        status: bool,
        reason: ConditionReason,
        message: str = "",
        now: datetime | None = None,
    ) -> None:
        """Set a condition, keeping the transition time when nothing changed."""

        timestamp = now or utcnow()
        current = self.condition(condition_type)
        transition_time = timestamp
        if current is not None and current.status == status and current.reason is reason:
            transition_time = current.last_transition_time
        updated = Condition(
            type=condition_type,
            status=status,
            reason=reason,
            message=message,
            last_transition_time=transition_time,
        )
        # reassign so persistence layers see the change
        self.conditions = [
            condition for condition in self.conditions if condition.type is not condition_type
        ] + [updated]

    def mark_for_deletion(self) -> None:
        self.deletion_requested = True
        self.next_attempt_at = None

    def record_success(self, *, now: datetime | None = None) -> None:
        self._clear_failure()
        self.set_condition(
            ConditionType.SYNCED,
            status=True,
            reason=ConditionReason.RECONCILE_SUCCESS,
            now=now,
        )
        self.touch(now)

    def record_not_converged(self, message: str, *, now: datetime | None = None) -> None:
        """The pass itself succeeded but the policy keeps drifting from the declaration."""

        self._clear_failure()
        self.set_condition(
            ConditionType.SYNCED,
            status=False,
            reason=ConditionReason.NOT_CONVERGED,
            message=message,
            now=now,
        )
        self.touch(now)

    def record_failure(
        self,
        message: str,
        *,
        retry_at: datetime,
        now: datetime | None = None,
    ) -> None:
        self.failure_count += 1
        self.last_error = message
        self.next_attempt_at = retry_at
        self.set_condition(
            ConditionType.SYNCED,
            status=False,
            reason=ConditionReason.RECONCILE_ERROR,
            message=message,
            now=now,
        )
        self.touch(now)

    def touch(self, now: datetime | None = None) -> None:
        self.updated_at = now or utcnow()

    def _clear_failure(self) -> None:
        self.failure_count = 0
        self.last_error = None
        self.next_attempt_at = None

    @property
    def is_synced(self) -> bool:
        synced = self.condition(ConditionType.SYNCED)
        return synced is not None and synced.status
