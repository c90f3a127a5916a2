"""SQLAlchemy-backed unit of work for catalog writes."""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

from cinerecon.domain.ports.unit_of_work import CatalogRepositories

from .repositories import SqlAlchemyEntityRepository, SqlAlchemyFieldChangeRepository

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.orm import Session, sessionmaker


class StartupError(RuntimeError):
    """Raised when a unit of work is used outside of its context."""


class SqlAlchemyUnitOfWork:
    """One session per ``with`` block; rolled back when the block raises."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self.session_factory = session_factory
        self._session: Session | None = None
        self._repositories: CatalogRepositories | None = None

    def __enter__(self) -> SqlAlchemyUnitOfWork:
        if self._session is not None:
            raise StartupError("Unit of work session already initialised")
        self._session = self.session_factory()
        self._repositories = CatalogRepositories(
            entities=SqlAlchemyEntityRepository(self._session),
            field_changes=SqlAlchemyFieldChangeRepository(self._session),
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
    def repositories(self) -> CatalogRepositories:
        if self._repositories is None:
            raise StartupError("Unit of work session not initialised")
        return self._repositories

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._session


if TYPE_CHECKING:
    from cinerecon.domain.ports.unit_of_work import CatalogUnitOfWork

    _uow_check: CatalogUnitOfWork = SqlAlchemyUnitOfWork(sessionmaker())
