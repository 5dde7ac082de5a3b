"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class BindingIntent(StrEnum):
    """Whether a member should hold a role (``PRESENT``) or not (``ABSENT``)."""

    PRESENT = "present"
    ABSENT = "absent"


class ObservedState(StrEnum):
    """Classification produced by a single observation of the remote policy."""

    NON_EXISTENT = "non_existent"
    UP_TO_DATE = "up_to_date"
    NOT_UP_TO_DATE = "not_up_to_date"
    ERROR = "error"


class ConditionType(StrEnum):
    READY = "Ready"
    SYNCED = "Synced"


class ConditionReason(StrEnum):
    AVAILABLE = "Available"
    CREATING = "Creating"
    DELETING = "Deleting"
    RECONCILE_SUCCESS = "ReconcileSuccess"
    RECONCILE_ERROR = "ReconcileError"
    NOT_CONVERGED = "NotConverged"
