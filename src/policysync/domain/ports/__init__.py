"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import DeclarationRepository, Repository
from .transport import PolicyTransport
from .unit_of_work import (
    DeclarationRepositories,
    DeclarationUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "DeclarationRepositories",
    "DeclarationRepository",
    "DeclarationUnitOfWork",
    "PolicyTransport",
    "Repository",
    "RepositoryCollection",
    "UnitOfWork",
]
