"""Create classification tables.

Revision ID: 0001
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "classification",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("path", sa.String(), nullable=False),
        sa.Column("reasoner_id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=True),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("creation_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_commit_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completion_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("save_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("inferred_relationship_changes_found", sa.Boolean(), nullable=True),
        sa.Column("equivalent_concepts_found", sa.Boolean(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_classification"),
    )
    op.create_index("ix_classification_path", "classification", ["path"])
    op.create_index("ix_classification_status", "classification", ["status"])

    op.create_table(
        "classification_relationship_change",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("classification_id", sa.String(64), nullable=False),
        sa.Column("sort_number", sa.Integer(), nullable=False),
        sa.Column("relationship_id", sa.String(18), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("source_id", sa.String(18), nullable=False),
        sa.Column("destination_id", sa.String(18), nullable=False),
        sa.Column("relationship_group", sa.Integer(), nullable=False),
        sa.Column("type_id", sa.String(18), nullable=False),
        sa.Column("characteristic_type_id", sa.String(18), nullable=False),
        sa.Column("modifier_id", sa.String(18), nullable=False),
        sa.Column("change_nature", sa.String(16), nullable=False),
        sa.Column("inferred_not_stated", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_classification_relationship_change"),
    )
    op.create_index(
        "ix_classification_relationship_change_merge_order",
        "classification_relationship_change",
        ["classification_id", "source_id", "relationship_group", "sort_number"],
    )

    op.create_table(
        "classification_equivalent_concepts",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("classification_id", sa.String(64), nullable=False),
        sa.Column("concept_ids", sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_classification_equivalent_concepts"),
    )
    op.create_index(
        "ix_classification_equivalent_concepts_classification_id",
        "classification_equivalent_concepts",
        ["classification_id"],
    )


def downgrade() -> None:
    op.drop_table("classification_equivalent_concepts")
    op.drop_table("classification_relationship_change")
    op.drop_table("classification")
