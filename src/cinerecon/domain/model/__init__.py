"""Public domain model surface."""

from __future__ import annotations

from cinerecon.domain.model.cast import (
    CastDetail,
    CastMember,
    CastName,
    cast_member_from_raw,
    cast_member_to_raw,
)
from cinerecon.domain.model.entity import (
    TITLE_FIELDS,
    YEAR_FIELD,
    Entity,
    QualityMetadata,
    new_id,
)
from cinerecon.domain.model.enums import (
    EXTERNAL_PROVIDERS,
    EntityKind,
    ExternalNamespace,
    Provider,
)
from cinerecon.domain.model.fields import (
    CAST_LIST_FIELDS,
    INTEGER_FIELDS,
    FieldValue,
    field_map_from_raw,
    field_map_to_raw,
    field_value_from_raw,
    field_value_to_raw,
    is_blank,
    parse_field_value,
    render_field_value,
)
from cinerecon.domain.model.provenance import FieldChange, utcnow

__all__ = [
    "CAST_LIST_FIELDS",
    "EXTERNAL_PROVIDERS",
    "INTEGER_FIELDS",
    "TITLE_FIELDS",
    "YEAR_FIELD",
    "CastDetail",
    "CastMember",
    "CastName",
    "Entity",
    "EntityKind",
    "ExternalNamespace",
    "FieldChange",
    "FieldValue",
    "Provider",
    "QualityMetadata",
    "cast_member_from_raw",
    "cast_member_to_raw",
    "field_map_from_raw",
    "field_map_to_raw",
    "field_value_from_raw",
    "field_value_to_raw",
    "is_blank",
    "new_id",
    "parse_field_value",
    "render_field_value",
    "utcnow",
]
