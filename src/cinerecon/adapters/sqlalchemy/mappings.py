"""SQLAlchemy mapping metadata for the catalog entities and their audit trail."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Dialect,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    orm,
)
from sqlalchemy.orm import composite

from cinerecon.domain.model import (
    Entity,
    EntityKind,
    FieldChange,
    FieldValue,
    Provider,
    QualityMetadata,
    field_map_from_raw,
    field_map_to_raw,
    field_value_from_raw,
    field_value_to_raw,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

ID_LENGTH = 36


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class FieldMapType(TypeDecorator[dict[str, FieldValue]]):
    """Canonical field map stored as one JSON object."""

    impl = JSON
    cache_ok = True

    def process_bind_param(
        self, value: Mapping[str, FieldValue] | None, dialect: Dialect
    ) -> dict[str, object] | None:
        _ = dialect
        if value is None:
            return None
        return field_map_to_raw(value)

    def process_result_value(self, value: Any, dialect: Dialect) -> dict[str, FieldValue]:
        _ = dialect
        if not isinstance(value, dict):
            return {}
        return field_map_from_raw(cast(dict[str, object], value))


class FieldValueType(TypeDecorator[FieldValue]):
    impl = JSON
    cache_ok = True

    def process_bind_param(self, value: FieldValue, dialect: Dialect) -> object:
        _ = dialect
        return field_value_to_raw(value)

    def process_result_value(self, value: Any, dialect: Dialect) -> FieldValue:
        _ = dialect
        return field_value_from_raw(value)


class ProviderListType(TypeDecorator[tuple[Provider, ...]]):
    impl = JSON
    cache_ok = True

    def process_bind_param(
        self, value: tuple[Provider, ...] | None, dialect: Dialect
    ) -> list[str] | None:
        _ = dialect
        if value is None:
            return None
        return [str(provider) for provider in value]

    def process_result_value(self, value: Any, dialect: Dialect) -> tuple[Provider, ...]:
        _ = dialect
        if not isinstance(value, list):
            return ()
        return tuple(Provider(item) for item in cast(list[Any], value) if isinstance(item, str))


class StringSetType(TypeDecorator[set[str]]):
    impl = JSON
    cache_ok = True

    def process_bind_param(self, value: set[str] | None, dialect: Dialect) -> list[str] | None:
        _ = dialect
        if value is None:
            return None
        return sorted(value)

    def process_result_value(self, value: Any, dialect: Dialect) -> set[str]:
        _ = dialect
        if not isinstance(value, list):
            return set()
        return {item for item in cast(list[Any], value) if isinstance(item, str)}


class StringMapType(TypeDecorator[dict[str, str]]):
    impl = JSON
    cache_ok = True

    def process_bind_param(
        self, value: Mapping[str, str] | None, dialect: Dialect
    ) -> dict[str, str] | None:
        _ = dialect
        if value is None:
            return None
        return {str(key): str(item) for key, item in sorted(value.items())}

    def process_result_value(self, value: Any, dialect: Dialect) -> dict[str, str]:
        _ = dialect
        if not isinstance(value, dict):
            return {}
        return {str(key): str(item) for key, item in cast(dict[Any, Any], value).items()}


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

entity_table = Table(
    "entity",
    mapper_registry.metadata,
    Column("id", String(ID_LENGTH), primary_key=True),
    Column(
        "kind",
        Enum(
            EntityKind,
            native_enum=False,
            length=16,
            values_callable=lambda kinds: [kind.value for kind in kinds],
        ),
        nullable=False,
    ),
    Column("title", String(512), nullable=False),
    Column("year", Integer, nullable=True),
    Column("external_ids", StringMapType(), nullable=False, default=dict),
    Column("fields", FieldMapType(), nullable=False, default=dict),
    Column("manual_fields", StringSetType(), nullable=False, default=list),
    Column("quality_grade", String(2), nullable=True),
    Column("last_verified_at", UTCDateTime(), nullable=True),
    Column("needs_manual_review", Boolean, nullable=False, default=False),
    Column("version", Integer, nullable=False, default=1),
    Index("ix_entity_kind_year", "kind", "year"),
    Index("ix_entity_last_verified_at", "last_verified_at"),
)

field_change_table = Table(
    "field_change",
    mapper_registry.metadata,
    Column("id", String(ID_LENGTH), primary_key=True),
    Column("entity_id", String(ID_LENGTH), ForeignKey("entity.id"), nullable=False, index=True),
    Column("field_name", String(128), nullable=False),
    Column("old_value", FieldValueType(), nullable=True),
    Column("new_value", FieldValueType(), nullable=True),
    Column("sources", ProviderListType(), nullable=False),
    Column("rationale", Text, nullable=False, default=""),
    Column("applied_by", String(128), nullable=False),
    Column("applied_at", UTCDateTime(), nullable=False),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(
        Entity,
        entity_table,
        properties={
            "quality": composite(
                QualityMetadata,
                entity_table.c.quality_grade,
                entity_table.c.last_verified_at,
                entity_table.c.needs_manual_review,
            ),
        },
        # the apply layer bumps the version; a stale copy fails its UPDATE
        version_id_col=entity_table.c.version,
        version_id_generator=False,
    )
    mapper_registry.map_imperatively(FieldChange, field_change_table)

    orm.configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    start_mappers()
    mapper_registry.metadata.create_all(engine)
