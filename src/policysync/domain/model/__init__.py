"""Public domain model surface."""

from __future__ import annotations

from policysync.domain.model.declaration import BindingDeclaration, Condition
from policysync.domain.model.enums import (
    BindingIntent,
    ConditionReason,
    ConditionType,
    ObservedState,
)
from policysync.domain.model.policy import (
    REQUIRED_POLICY_VERSION,
    Binding,
    BindingCondition,
    DesiredBindingSpec,
    PolicyDocument,
)

__all__ = [
    "REQUIRED_POLICY_VERSION",
    "Binding",
    "BindingCondition",
    "BindingDeclaration",
    "BindingIntent",
    "Condition",
    "ConditionReason",
    "ConditionType",
    "DesiredBindingSpec",
    "ObservedState",
    "PolicyDocument",
]
