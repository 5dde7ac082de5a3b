"""Result types exchanged between the reconcile driver and its host."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from policysync.domain.model.enums import ObservedState


class ReconcilePhase(StrEnum):
    OBSERVE = "observe"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(slots=True, frozen=True)
class ExternalObservation:
    """What a single observation found on the remote side."""

    resource_exists: bool = False
    resource_up_to_date: bool = False

    @property
    def state(self) -> ObservedState:
        if not self.resource_exists:
            return ObservedState.NON_EXISTENT
        if self.resource_up_to_date:
            return ObservedState.UP_TO_DATE
        return ObservedState.NOT_UP_TO_DATE


@dataclass(slots=True, frozen=True)
class ExternalCreation:
    written: bool = True


@dataclass(slots=True, frozen=True)
class ExternalUpdate:
    changed: bool = False
