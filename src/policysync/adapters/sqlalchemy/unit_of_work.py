"""SQLAlchemy-backed unit of work for binding declarations."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from policysync.adapters.sqlalchemy.mappings import create_all_tables, start_mappers
from policysync.adapters.sqlalchemy.repositories import SqlAlchemyDeclarationRepository
from policysync.config.storage import get_database_config
from policysync.domain.ports.unit_of_work import DeclarationRepositories

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine

log = getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when the declaration store is used before (or after) its lifecycle."""


@dataclass(slots=True)
class _StoreState:
    engine: Engine | None = None
    session_factory: sessionmaker[Session] | None = None


_STATE = _StoreState()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Bind the declaration store to a database and create its schema."""

    if _STATE.engine is not None and not force:
        raise StartupError("Declaration store already started. Pass force=True to rebind.")
    if _STATE.engine is not None and _STATE.engine is not engine:
        shutdown()

    resolved_engine = engine or create_engine(database_uri or get_database_config().uri)
    start_mappers()
    create_all_tables(resolved_engine)
    _STATE.engine = resolved_engine
    _STATE.session_factory = sessionmaker(bind=resolved_engine, expire_on_commit=False)
    log.debug("Declaration store bound to %s", resolved_engine.url)


def is_started() -> bool:
    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the engine and forget the session factory (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None
    _STATE.session_factory = None


class SqlAlchemyDeclarationUnitOfWork:
    """One session per ``with`` block; uncommitted work is rolled back on error."""

    def __init__(self) -> None:
        if _STATE.session_factory is None:
            raise StartupError(
                "Declaration store not started. Call policysync.adapters.sqlalchemy."
                "unit_of_work.startup() before requesting a unit of work."
            )
        self._session_factory = _STATE.session_factory
        self._session: Session | None = None
        self._repositories: DeclarationRepositories | None = None

    def __enter__(self) -> SqlAlchemyDeclarationUnitOfWork:
        if self._session is not None:
            raise StartupError("Unit of work is already open")
        self._session = self._session_factory()
        self._repositories = DeclarationRepositories(
            declarations=SqlAlchemyDeclarationRepository(self._session)
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if exc_type is not None:
            self.rollback()
        self.session.close()
        self._session = None
        self._repositories = None
        return False

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    @property
    def repositories(self) -> DeclarationRepositories:
        if self._repositories is None:
            raise StartupError("Unit of work is not open")
        return self._repositories

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work is not open")
        return self._session


if TYPE_CHECKING:
    from policysync.domain.ports.unit_of_work import DeclarationUnitOfWork

    _uow_check: DeclarationUnitOfWork = SqlAlchemyDeclarationUnitOfWork()
