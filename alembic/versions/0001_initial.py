"""points ledger, rank audit, rule sets

Revision ID: 0001_initial
Revises:
Create Date: 2026-01-15 00:00:00
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.create_table(
        "user_profiles",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("rank_points", sa.Integer, nullable=False, server_default="0"),
        sa.Column("rank", sa.String(16), nullable=False, server_default="unranked"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()")),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
        sa.CheckConstraint("rank IN ('unranked', 'bronze', 'silver', 'gold')", name="ck_user_profiles_rank"),
        sa.CheckConstraint("rank_points BETWEEN 0 AND 100", name="ck_user_profiles_rank_points"),
    )

    op.create_table(
        "events",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("title", sa.String(256)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()")),
    )

    op.create_table(
        "event_attendance",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("event_id", sa.String(36), sa.ForeignKey("events.id"), nullable=False),
        sa.Column("checked_in_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()")),
        sa.UniqueConstraint("user_id", "event_id", name="uq_event_attendance_user_event"),
    )
    op.create_index("ix_event_attendance_user_id", "event_attendance", ["user_id"])
    op.create_index("ix_event_attendance_event_id", "event_attendance", ["event_id"])

    op.create_table(
        "rank_rules",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("version", sa.String(32), nullable=False),
        sa.Column("active", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("rules", JSONB, nullable=False),
        sa.Column("created_by", sa.String(36)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()")),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
    )
    op.create_index(
        "uq_rank_rules_active", "rank_rules", ["active"], unique=True,
        postgresql_where=sa.text("active"),
    )

    op.create_table(
        "points",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("event_id", sa.String(36), sa.ForeignKey("events.id")),
        sa.Column("amount", sa.Integer, nullable=False),
        sa.Column("reason", sa.String(64), nullable=False),
        sa.Column("metadata", JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()")),
    )
    op.create_index("ix_points_user_id", "points", ["user_id"])
    op.create_index("ix_points_event_id", "points", ["event_id"])
    op.create_index(
        "uq_points_user_event_reason", "points", ["user_id", "event_id", "reason"], unique=True,
        postgresql_where=sa.text("event_id IS NOT NULL"),
    )

    op.create_table(
        "rank_transactions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("action_type", sa.String(64), nullable=False),
        sa.Column("points_delta", sa.Integer, nullable=False),
        sa.Column("previous_points", sa.Integer, nullable=False),
        sa.Column("new_points", sa.Integer, nullable=False),
        sa.Column("previous_rank", sa.String(16)),
        sa.Column("new_rank", sa.String(16)),
        sa.Column("rank_changed", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("metadata", JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()")),
    )
    op.create_index("ix_rank_transactions_user_id", "rank_transactions", ["user_id"])
    op.create_index("ix_rank_transactions_action_type", "rank_transactions", ["action_type"])
    op.create_index("ix_rank_transactions_created_at", "rank_transactions", ["created_at"])

def downgrade():
    op.drop_index("ix_rank_transactions_created_at", table_name="rank_transactions")
    op.drop_index("ix_rank_transactions_action_type", table_name="rank_transactions")
    op.drop_index("ix_rank_transactions_user_id", table_name="rank_transactions")
    op.drop_table("rank_transactions")

    op.drop_index("uq_points_user_event_reason", table_name="points")
    op.drop_index("ix_points_event_id", table_name="points")
    op.drop_index("ix_points_user_id", table_name="points")
    op.drop_table("points")

    op.drop_index("uq_rank_rules_active", table_name="rank_rules")
    op.drop_table("rank_rules")

    op.drop_index("ix_event_attendance_event_id", table_name="event_attendance")
    op.drop_index("ix_event_attendance_user_id", table_name="event_attendance")
    op.drop_table("event_attendance")

    op.drop_table("events")
    op.drop_table("user_profiles")
