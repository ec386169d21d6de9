"""create nodes table

Revision ID: 0001_create_nodes
Revises:
Create Date: 2026-10-17 00:00:00
"""
from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "0001_create_nodes"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    is_pg = op.get_bind().dialect.name == "postgresql"
    data_type = postgresql.JSONB() if is_pg else sa.JSON()
    tags_type = postgresql.ARRAY(sa.String()) if is_pg else sa.JSON()

    op.create_table(
        "nodes",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("label", sa.Text(), nullable=False),
        sa.Column("data", data_type, nullable=False, server_default=sa.text("'{}'")),
        sa.Column("tags", tags_type, nullable=False, server_default=sa.text("'{}'" if is_pg else "'[]'")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("idx_nodes_label", "nodes", ["label"])
    op.create_index("idx_nodes_created_at", "nodes", ["created_at"])

    if is_pg:
        op.create_index("idx_nodes_data", "nodes", ["data"], postgresql_using="gin")
        op.create_index("idx_nodes_tags", "nodes", ["tags"], postgresql_using="gin")
        op.execute(
            "CREATE INDEX idx_nodes_tsvector ON nodes "
            "USING GIN (to_tsvector('english', label || ' ' || data::text))"
        )


def downgrade() -> None:
    op.drop_table("nodes")
