"""Ports for persisting binding declarations."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from policysync.domain.model import BindingDeclaration


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class DeclarationRepository(Repository["BindingDeclaration"], Protocol):
    """Persistence contract for binding declarations."""

    def get(self, declaration_id: UUID) -> BindingDeclaration | None: ...

    def find(self, *, resource_id: str, role: str, member: str) -> BindingDeclaration | None: ...

    def list_all(self) -> list[BindingDeclaration]: ...

    def list_due(self, now: datetime) -> list[BindingDeclaration]: ...

    def remove(self, entity: BindingDeclaration) -> None: ...
