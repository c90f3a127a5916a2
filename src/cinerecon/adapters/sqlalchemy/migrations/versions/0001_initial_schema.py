"""Initial schema: entities and their field change history.

Revision ID: 0001
Revises:
Create Date: 2026-10-17
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

from cinerecon.adapters.sqlalchemy.mappings import (
    FieldMapType,
    FieldValueType,
    ProviderListType,
    StringMapType,
    StringSetType,
    UTCDateTime,
)

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "entity",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("kind", sa.String(16), nullable=False),
        sa.Column("title", sa.String(512), nullable=False),
        sa.Column("year", sa.Integer(), nullable=True),
        sa.Column("external_ids", StringMapType(), nullable=False),
        sa.Column("fields", FieldMapType(), nullable=False),
        sa.Column("manual_fields", StringSetType(), nullable=False),
        sa.Column("quality_grade", sa.String(2), nullable=True),
        sa.Column("last_verified_at", UTCDateTime(), nullable=True),
        sa.Column("needs_manual_review", sa.Boolean(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_entity")),
    )
    op.create_index("ix_entity_kind_year", "entity", ["kind", "year"])
    op.create_index("ix_entity_last_verified_at", "entity", ["last_verified_at"])

    op.create_table(
        "field_change",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("entity_id", sa.String(36), nullable=False),
        sa.Column("field_name", sa.String(128), nullable=False),
        sa.Column("old_value", FieldValueType(), nullable=True),
        sa.Column("new_value", FieldValueType(), nullable=True),
        sa.Column("sources", ProviderListType(), nullable=False),
        sa.Column("rationale", sa.Text(), nullable=False),
        sa.Column("applied_by", sa.String(128), nullable=False),
        sa.Column("applied_at", UTCDateTime(), nullable=False),
        sa.ForeignKeyConstraint(
            ["entity_id"],
            ["entity.id"],
            name=op.f("fk_field_change_entity_id_entity"),
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_field_change")),
    )
    op.create_index(
        op.f("ix_field_change_entity_id"), "field_change", ["entity_id"]
    )


def downgrade() -> None:
    op.drop_index(op.f("ix_field_change_entity_id"), table_name="field_change")
    op.drop_table("field_change")
    op.drop_index("ix_entity_last_verified_at", table_name="entity")
    op.drop_index("ix_entity_kind_year", table_name="entity")
    op.drop_table("entity")
