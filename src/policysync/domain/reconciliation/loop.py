"""Control-loop host driving declarations through the reconcile phases.

One pass loads every declaration that is due, reconciles them concurrently
(bounded by ``max_concurrent_reconciles``) and persists their status. Failed
declarations are pushed back with exponential backoff; a declaration that
keeps needing updates is flagged as not converged instead of being retried
silently.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import timedelta
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from policysync.config.reconcile import ReconcileConfig
from policysync.domain.errors import PolicySyncError
from policysync.domain.model.declaration import utcnow
from policysync.domain.model.enums import ConditionReason, ConditionType, ObservedState

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime
    from uuid import UUID

    from policysync.domain.model import BindingDeclaration
    from policysync.domain.ports.unit_of_work import DeclarationUnitOfWork

    from .driver import PolicyReconciler

log = getLogger(__name__)


class ReconcileAction(StrEnum):
    NONE = "none"
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    FAILED = "failed"


@dataclass(slots=True, frozen=True, kw_only=True)
class ReconcileOutcome:
    """Result of reconciling one declaration in one pass."""

    declaration_id: UUID
    resource_id: str
    action: ReconcileAction
    observed: ObservedState
    converged: bool = True
    error: str | None = None


@dataclass(slots=True)
class ReconcilePassResult:
    """Summary of one pass over all due declarations."""

    outcomes: list[ReconcileOutcome] = field(default_factory=list[ReconcileOutcome])

    @property
    def attempted(self) -> int:
        return len(self.outcomes)

    @property
    def failed(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.action is ReconcileAction.FAILED)

    @property
    def changed(self) -> int:
        return sum(
            1
            for outcome in self.outcomes
            if outcome.action
            in {ReconcileAction.CREATED, ReconcileAction.UPDATED, ReconcileAction.DELETED}
        )

    @property
    def not_converged(self) -> list[ReconcileOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.converged]


class ReconcileLoop:
    """Run reconcile passes over persisted declarations."""

    def __init__(
        self,
        *,
        reconciler: PolicyReconciler,
        unit_of_work_factory: Callable[[], DeclarationUnitOfWork],
        config: ReconcileConfig | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._reconciler = reconciler
        self._unit_of_work_factory = unit_of_work_factory
        self._config = config or ReconcileConfig()
        self._clock = clock

    async def run_once(self) -> ReconcilePassResult:
        now = self._clock()
        with self._unit_of_work_factory() as uow:
            repository = uow.repositories.declarations
            due = repository.list_due(now)
            if not due:
                log.debug("No declarations due")
                return ReconcilePassResult()

            semaphore = asyncio.Semaphore(self._config.max_concurrent_reconciles)
            async with asyncio.TaskGroup() as group:
                tasks = [
                    group.create_task(self._reconcile_guarded(declaration, semaphore, now))
                    for declaration in due
                ]

            outcomes = [task.result() for task in tasks]
            for declaration, outcome in zip(due, outcomes, strict=True):
                if outcome.action is ReconcileAction.DELETED:
                    repository.remove(declaration)
            uow.commit()

        result = ReconcilePassResult(outcomes=outcomes)
        log.info(
            "Reconcile pass finished: attempted=%s, changed=%s, failed=%s, not_converged=%s",
            result.attempted,
            result.changed,
            result.failed,
            len(result.not_converged),
        )
        return result

    async def run_forever(self, stop: asyncio.Event) -> None:
        """Repeat passes every poll interval until ``stop`` is set."""

        while not stop.is_set():
            await self.run_once()
            try:
                await asyncio.wait_for(stop.wait(), timeout=self._config.poll_interval_seconds)
            except TimeoutError:
                continue

    async def _reconcile_guarded(
        self,
        declaration: BindingDeclaration,
        semaphore: asyncio.Semaphore,
        now: datetime,
    ) -> ReconcileOutcome:
        async with semaphore:
            try:
                return await self._reconcile(declaration, now)
            except PolicySyncError as exc:
                delay = self._record_failure(declaration, str(exc), now)
                log.warning(
                    "Reconcile of %s on %s failed (attempt %s, retry in %.1fs): %s",
                    declaration.id,
                    declaration.resource_id,
                    declaration.failure_count,
                    delay,
                    exc,
                )
                return self._failed(declaration, str(exc))
            except Exception as exc:
                message = f"Unexpected error: {exc!r}"
                delay = self._record_failure(declaration, message, now)
                log.exception(
                    "Reconcile of %s on %s crashed (attempt %s, retry in %.1fs)",
                    declaration.id,
                    declaration.resource_id,
                    declaration.failure_count,
                    delay,
                )
                return self._failed(declaration, message)

    def _record_failure(
        self, declaration: BindingDeclaration, message: str, now: datetime
    ) -> float:
        delay = self._config.backoff_seconds(declaration.failure_count + 1)
        declaration.record_failure(message, retry_at=now + timedelta(seconds=delay), now=now)
        return delay

    @staticmethod
    def _failed(declaration: BindingDeclaration, message: str) -> ReconcileOutcome:
        return ReconcileOutcome(
            declaration_id=declaration.id,
            resource_id=declaration.resource_id,
            action=ReconcileAction.FAILED,
            observed=ObservedState.ERROR,
            converged=False,
            error=message,
        )

    async def _reconcile(self, declaration: BindingDeclaration, now: datetime) -> ReconcileOutcome:
        spec = declaration.to_spec()
        resource_id = declaration.resource_id

        if declaration.deletion_requested:
            if not spec.should_be_bound:
                # an ABSENT declaration owns no binding, so there is nothing to clear
                log.info("Dropped absent declaration %s on %s", declaration.id, resource_id)
                return self._outcome(declaration, ReconcileAction.DELETED, ObservedState.UP_TO_DATE)
            declaration.set_condition(
                ConditionType.READY, status=False, reason=ConditionReason.DELETING, now=now
            )
            await self._reconciler.delete(resource_id, spec)
            declaration.record_success(now=now)
            return self._outcome(declaration, ReconcileAction.DELETED, ObservedState.NON_EXISTENT)

        observation = await self._reconciler.observe(resource_id, spec)
        observed = observation.state
        action = ReconcileAction.NONE
        converged = True

        if observed is ObservedState.NON_EXISTENT:
            declaration.not_converged_count = 0
            creation = await self._reconciler.create(resource_id, spec)
            if creation.written:
                action = ReconcileAction.CREATED
                declaration.set_condition(
                    ConditionType.READY, status=False, reason=ConditionReason.CREATING, now=now
                )
            else:
                self._mark_available(declaration, now)
        elif observed is ObservedState.NOT_UP_TO_DATE:
            declaration.not_converged_count += 1
            update = await self._reconciler.update(resource_id, spec)
            if update.changed:
                action = ReconcileAction.UPDATED
            self._mark_available(declaration, now)
            converged = declaration.not_converged_count < self._config.stuck_threshold
        else:
            declaration.not_converged_count = 0
            self._mark_available(declaration, now)

        if converged:
            declaration.record_success(now=now)
        else:
            message = (
                f"Policy still not up to date after {declaration.not_converged_count} "
                "consecutive updates"
            )
            declaration.record_not_converged(message, now=now)
            log.warning("%s on %s: %s", declaration.id, resource_id, message)

        return self._outcome(declaration, action, observed, converged=converged)

    @staticmethod
    def _mark_available(declaration: BindingDeclaration, now: datetime) -> None:
        declaration.set_condition(
            ConditionType.READY, status=True, reason=ConditionReason.AVAILABLE, now=now
        )

    @staticmethod
    def _outcome(
        declaration: BindingDeclaration,
        action: ReconcileAction,
        observed: ObservedState,
        *,
        converged: bool = True,
    ) -> ReconcileOutcome:
        return ReconcileOutcome(
            declaration_id=declaration.id,
            resource_id=declaration.resource_id,
            action=action,
            observed=observed,
            converged=converged,
        )
