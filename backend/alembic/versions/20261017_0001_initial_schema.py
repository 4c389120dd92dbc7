"""extraction records, merge log and pair decisions

Revision ID: 20261017_0001
Revises:
Create Date: 2026-10-17 00:00:01
"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "20261017_0001"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "entity_records",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("conversation_id", sa.String(length=255), nullable=False),
        sa.Column("domain", sa.String(length=64), nullable=False),
        sa.Column("entities_json", sa.JSON(), nullable=False),
        sa.Column("relationships_json", sa.JSON(), nullable=False),
        sa.Column("summary", sa.Text(), nullable=False),
        sa.Column("metadata_json", sa.JSON(), nullable=False),
        sa.Column("confidence", sa.Float(), nullable=False),
        sa.Column("entity_count", sa.Integer(), nullable=False),
        sa.Column("is_fallback", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_entity_records_conversation_id", "entity_records", ["conversation_id"], unique=False)
    op.create_index("ix_entity_records_domain", "entity_records", ["domain"], unique=False)

    op.create_table(
        "merge_records",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("merge_id", sa.String(length=64), nullable=False),
        sa.Column("domain", sa.String(length=64), nullable=False),
        sa.Column("merge_type", sa.String(length=16), nullable=False),
        sa.Column("primary_entity_id", sa.String(length=128), nullable=False),
        sa.Column("secondary_entity_id", sa.String(length=128), nullable=False),
        sa.Column("primary_snapshot_json", sa.JSON(), nullable=False),
        sa.Column("secondary_snapshot_json", sa.JSON(), nullable=False),
        sa.Column("result_snapshot_json", sa.JSON(), nullable=False),
        sa.Column("similarity_json", sa.JSON(), nullable=False),
        sa.Column("reasons_json", sa.JSON(), nullable=False),
        sa.Column("merger_version", sa.String(length=64), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("undone", sa.Boolean(), nullable=False),
        sa.Column("undone_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_merge_records_merge_id", "merge_records", ["merge_id"], unique=True)
    op.create_index("ix_merge_records_domain", "merge_records", ["domain"], unique=False)
    op.create_index("ix_merge_records_primary_entity_id", "merge_records", ["primary_entity_id"], unique=False)
    op.create_index("ix_merge_records_secondary_entity_id", "merge_records", ["secondary_entity_id"], unique=False)

    op.create_table(
        "pair_decisions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("domain", sa.String(length=64), nullable=False),
        sa.Column("pair_key", sa.String(length=512), nullable=False),
        sa.Column("decision", sa.String(length=16), nullable=False),
        sa.Column("decided_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("domain", "pair_key", name="uq_pair_decisions_domain_pair_key"),
    )
    op.create_index("ix_pair_decisions_domain", "pair_decisions", ["domain"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_pair_decisions_domain", table_name="pair_decisions")
    op.drop_table("pair_decisions")
    op.drop_index("ix_merge_records_secondary_entity_id", table_name="merge_records")
    op.drop_index("ix_merge_records_primary_entity_id", table_name="merge_records")
    op.drop_index("ix_merge_records_domain", table_name="merge_records")
    op.drop_index("ix_merge_records_merge_id", table_name="merge_records")
    op.drop_table("merge_records")
    op.drop_index("ix_entity_records_domain", table_name="entity_records")
    op.drop_index("ix_entity_records_conversation_id", table_name="entity_records")
    op.drop_table("entity_records")
