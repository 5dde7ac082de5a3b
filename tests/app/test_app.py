from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from policysync.app import (
    declare_binding,
    list_declarations,
    reconcile_declarations,
    undeclare_binding,
)
from policysync.config.reconcile import ReconcileConfig
from policysync.domain.errors import DeclarationNotFoundError
from policysync.domain.model import BindingIntent
from tests.helpers.declarations import FakeDeclarationRepository, FakeDeclarationUnitOfWork
from tests.helpers.transport import FakePolicyTransport, as_mapping

if TYPE_CHECKING:
    from collections.abc import Callable

ROLE = "roles/storage.objectViewer"
MEMBER = "user:alice@example.com"


@pytest.fixture
def repository() -> FakeDeclarationRepository:
    return FakeDeclarationRepository()


@pytest.fixture
def uow_factory(
    repository: FakeDeclarationRepository,
) -> Callable[[], FakeDeclarationUnitOfWork]:
    return lambda: FakeDeclarationUnitOfWork(repository)


def test_declare_binding_adds_new_declaration(
    repository: FakeDeclarationRepository,
    uow_factory: Callable[[], FakeDeclarationUnitOfWork],
) -> None:
    declaration = declare_binding(
        resource_id="bucket-a", role=ROLE, member=MEMBER, unit_of_work_factory=uow_factory
    )

    assert repository.items == [declaration]
    assert declaration.intent is BindingIntent.PRESENT


def test_redeclaring_updates_intent_and_cancels_deletion(
    repository: FakeDeclarationRepository,
    uow_factory: Callable[[], FakeDeclarationUnitOfWork],
) -> None:
    first = declare_binding(
        resource_id="bucket-a", role=ROLE, member=MEMBER, unit_of_work_factory=uow_factory
    )
    undeclare_binding(
        resource_id="bucket-a", role=ROLE, member=MEMBER, unit_of_work_factory=uow_factory
    )

    second = declare_binding(
        resource_id="bucket-a",
        role=ROLE,
        member=MEMBER,
        intent=BindingIntent.ABSENT,
        unit_of_work_factory=uow_factory,
    )

    assert second is first
    assert len(repository.items) == 1
    assert second.intent is BindingIntent.ABSENT
    assert second.deletion_requested is False


def test_undeclare_unknown_binding_raises(
    uow_factory: Callable[[], FakeDeclarationUnitOfWork],
) -> None:
    with pytest.raises(DeclarationNotFoundError):
        undeclare_binding(
            resource_id="bucket-a", role=ROLE, member=MEMBER, unit_of_work_factory=uow_factory
        )


def test_reconcile_declarations_runs_one_pass(
    uow_factory: Callable[[], FakeDeclarationUnitOfWork],
) -> None:
    transport = FakePolicyTransport()
    declare_binding(
        resource_id="bucket-a", role=ROLE, member=MEMBER, unit_of_work_factory=uow_factory
    )

    result = reconcile_declarations(
        transport=transport, unit_of_work_factory=uow_factory, config=ReconcileConfig()
    )

    assert result.changed == 1
    assert as_mapping(transport.policies["bucket-a"]) == {ROLE: [MEMBER]}
    assert len(list_declarations(unit_of_work_factory=uow_factory)) == 1
