"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import replace
from logging import getLogger
from typing import TYPE_CHECKING

from policysync.adapters.gcs import GcsPolicyTransport
from policysync.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyDeclarationUnitOfWork,
    is_started,
    startup,
)
from policysync.config.reconcile import ReconcileConfig, get_reconcile_config
from policysync.domain.errors import DeclarationNotFoundError
from policysync.domain.model import BindingDeclaration, BindingIntent
from policysync.domain.ports.unit_of_work import DeclarationUnitOfWork
from policysync.domain.reconciliation import PolicyReconciler, ReconcileLoop

if TYPE_CHECKING:
    from policysync.domain.ports.transport import PolicyTransport
    from policysync.domain.reconciliation import ReconcilePassResult

UnitOfWorkFactory = Callable[[], DeclarationUnitOfWork]


log = getLogger(__name__)


def _ensure_started(unit_of_work_factory: UnitOfWorkFactory | None) -> UnitOfWorkFactory:
    if unit_of_work_factory is not None:
        return unit_of_work_factory
    if not is_started():
        startup()
    return SqlAlchemyDeclarationUnitOfWork


@asynccontextmanager
async def _transport_scope(transport: PolicyTransport | None) -> AsyncIterator[PolicyTransport]:
    """Yield ``transport``, or a GCS transport closed when the scope ends."""

    if transport is not None:
        yield transport
        return
    async with GcsPolicyTransport() as gcs_transport:
        yield gcs_transport


def declare_binding(
    *,
    resource_id: str,
    role: str,
    member: str,
    intent: BindingIntent = BindingIntent.PRESENT,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> BindingDeclaration:
    """Create or refresh the declaration for one role/member pair on a resource.

    Re-declaring an existing pair updates its intent, cancels a pending
    deletion and makes it due on the next pass.
    """

    effective_uow = _ensure_started(unit_of_work_factory)
    with effective_uow() as uow:
        repository = uow.repositories.declarations
        declaration = repository.find(resource_id=resource_id, role=role, member=member)
        if declaration is None:
            declaration = BindingDeclaration(
                resource_id=resource_id, role=role, member=member, intent=intent
            )
            repository.add(declaration)
            log.info("Declared %s %s for %s on %s", intent, role, member, resource_id)
        else:
            declaration.intent = intent
            declaration.deletion_requested = False
            declaration.next_attempt_at = None
            declaration.touch()
            log.info("Refreshed declaration %s (%s)", declaration.id, intent)
        uow.commit()
    return declaration


def undeclare_binding(
    *,
    resource_id: str,
    role: str,
    member: str,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> BindingDeclaration:
    """Mark a declaration for deletion; the next pass clears the remote policy."""

    effective_uow = _ensure_started(unit_of_work_factory)
    with effective_uow() as uow:
        repository = uow.repositories.declarations
        declaration = repository.find(resource_id=resource_id, role=role, member=member)
        if declaration is None:
            raise DeclarationNotFoundError(resource_id, role, member)
        declaration.mark_for_deletion()
        declaration.touch()
        uow.commit()
    log.info("Marked declaration %s for deletion", declaration.id)
    return declaration


def list_declarations(
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> list[BindingDeclaration]:
    effective_uow = _ensure_started(unit_of_work_factory)
    with effective_uow() as uow:
        return uow.repositories.declarations.list_all()


def build_reconcile_loop(
    *,
    transport: PolicyTransport | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: ReconcileConfig | None = None,
) -> ReconcileLoop:
    effective_config = config or get_reconcile_config()
    effective_uow = _ensure_started(unit_of_work_factory)
    reconciler = PolicyReconciler(
        transport=transport or GcsPolicyTransport(),
        required_version=effective_config.required_policy_version,
    )
    return ReconcileLoop(
        reconciler=reconciler,
        unit_of_work_factory=effective_uow,
        config=effective_config,
    )


def reconcile_declarations(
    *,
    transport: PolicyTransport | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: ReconcileConfig | None = None,
) -> ReconcilePassResult:
    """Run a single reconcile pass over every due declaration."""

    async def _run() -> ReconcilePassResult:
        async with _transport_scope(transport) as effective_transport:
            loop = build_reconcile_loop(
                transport=effective_transport,
                unit_of_work_factory=unit_of_work_factory,
                config=config,
            )
            return await loop.run_once()

    return asyncio.run(_run())


def run_reconcile_loop(
    *,
    transport: PolicyTransport | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: ReconcileConfig | None = None,
    interval_seconds: float | None = None,
) -> None:
    """Reconcile continuously until interrupted."""

    effective_config = config or get_reconcile_config()
    if interval_seconds is not None:
        effective_config = replace(effective_config, poll_interval_seconds=interval_seconds)
    log.info("Starting reconcile loop (interval=%ss)", effective_config.poll_interval_seconds)

    async def _run() -> None:
        async with _transport_scope(transport) as effective_transport:
            loop = build_reconcile_loop(
                transport=effective_transport,
                unit_of_work_factory=unit_of_work_factory,
                config=effective_config,
            )
            await loop.run_forever(asyncio.Event())

    asyncio.run(_run())
