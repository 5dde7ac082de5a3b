"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import or_, select

from policysync.adapters.sqlalchemy.mappings import binding_declaration_table
from policysync.domain.model import BindingDeclaration

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from sqlalchemy.orm import Session


class SqlAlchemyDeclarationRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: BindingDeclaration) -> None:
        self.session.add(entity)

    def get(self, declaration_id: UUID) -> BindingDeclaration | None:
        return self.session.get(BindingDeclaration, declaration_id)

    def find(self, *, resource_id: str, role: str, member: str) -> BindingDeclaration | None:
        table = binding_declaration_table
        stmt = (
            select(BindingDeclaration)
            .where(table.c.resource_id == resource_id)
            .where(table.c.role == role)
            .where(table.c.member == member)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def list_all(self) -> list[BindingDeclaration]:
        table = binding_declaration_table
        stmt = select(BindingDeclaration).order_by(
            table.c.resource_id, table.c.role, table.c.member
        )
        return list(self.session.execute(stmt).scalars())

    def list_due(self, now: datetime) -> list[BindingDeclaration]:
        """Declarations without a pending backoff, deletions included."""

        table = binding_declaration_table
        stmt = (
            select(BindingDeclaration)
            .where(
                or_(
                    table.c.next_attempt_at.is_(None),
                    table.c.next_attempt_at <= now,
                )
            )
            .order_by(table.c.created_at)
        )
        return list(self.session.execute(stmt).scalars())

    def remove(self, entity: BindingDeclaration) -> None:
        self.session.delete(entity)

