"""create anime_monitors table

Revision ID: 0001_anime_monitors
Revises:
Create Date: 2026-10-19
"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_anime_monitors"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "anime_monitors",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "is_deleted",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
        ),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("anime_id", sa.Integer(), nullable=True),
        sa.Column("anime_name", sa.String(), nullable=True),
        sa.Column(
            "polling_interval_sec",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("300"),
        ),
        sa.Column(
            "high_activity_threshold",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("1000"),
        ),
        sa.Column(
            "medium_activity_threshold",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("500"),
        ),
        sa.Column(
            "notify_on_high_activity",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
        ),
        sa.Column("webhook_url", sa.String(), nullable=True),
        sa.Column("status", sa.JSON(), nullable=True),
        sa.Column(
            "resource_version",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("1"),
        ),
        sa.Column("next_reconcile_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_anime_monitors_name", "anime_monitors", ["name"])
    op.create_index("ix_anime_monitors_anime_id", "anime_monitors", ["anime_id"])
    op.create_index(
        "ix_anime_monitors_next_reconcile_at",
        "anime_monitors",
        ["next_reconcile_at"],
    )
    # 软删除后允许同名目标重新创建
    op.create_index(
        "uq_anime_monitors_name_live",
        "anime_monitors",
        ["name"],
        unique=True,
        postgresql_where=sa.text("is_deleted = false"),
    )


def downgrade() -> None:
    op.drop_index("uq_anime_monitors_name_live", table_name="anime_monitors")
    op.drop_index("ix_anime_monitors_next_reconcile_at", table_name="anime_monitors")
    op.drop_index("ix_anime_monitors_anime_id", table_name="anime_monitors")
    op.drop_index("ix_anime_monitors_name", table_name="anime_monitors")
    op.drop_table("anime_monitors")
