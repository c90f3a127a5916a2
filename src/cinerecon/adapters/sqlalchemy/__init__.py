"""SQLAlchemy adapter package."""

from __future__ import annotations

from .mappings import create_all_tables, mapper_registry, start_mappers
from .repositories import SqlAlchemyEntityRepository, SqlAlchemyFieldChangeRepository
from .store import SqlAlchemyEntityStore, create_store_engine, open_entity_store
from .unit_of_work import SqlAlchemyUnitOfWork, StartupError

__all__ = [
    "SqlAlchemyEntityRepository",
    "SqlAlchemyEntityStore",
    "SqlAlchemyFieldChangeRepository",
    "SqlAlchemyUnitOfWork",
    "StartupError",
    "create_all_tables",
    "create_store_engine",
    "mapper_registry",
    "open_entity_store",
    "start_mappers",
]
