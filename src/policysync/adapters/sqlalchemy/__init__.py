"""SQLAlchemy adapter package for policysync."""

from __future__ import annotations

from .mappings import binding_declaration_table, create_all_tables, mapper_registry, start_mappers
from .repositories import SqlAlchemyDeclarationRepository
from .unit_of_work import SqlAlchemyDeclarationUnitOfWork, shutdown, startup

__all__ = [
    "SqlAlchemyDeclarationRepository",
    "SqlAlchemyDeclarationUnitOfWork",
    "binding_declaration_table",
    "create_all_tables",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
