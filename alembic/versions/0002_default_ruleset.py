"""seed the default rule set as active

Revision ID: 0002_default_ruleset
Revises: 0001_initial
Create Date: 2026-01-15 00:10:00
"""
import uuid
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

from app.rules.ruleset import DEFAULT_RULESET, DEFAULT_RULESET_NAME

revision = "0002_default_ruleset"
down_revision = "0001_initial"
branch_labels = None
depends_on = None

rank_rules = sa.table(
    "rank_rules",
    sa.column("id", sa.String),
    sa.column("name", sa.String),
    sa.column("version", sa.String),
    sa.column("active", sa.Boolean),
    sa.column("rules", JSONB),
)

def upgrade():
    conn = op.get_bind()
    has_active = conn.execute(
        sa.select(rank_rules.c.id).where(rank_rules.c.active.is_(True))
    ).first()
    if has_active:
        return
    op.bulk_insert(rank_rules, [{
        "id": str(uuid.uuid4()),
        "name": DEFAULT_RULESET_NAME,
        "version": DEFAULT_RULESET["version"],
        "active": True,
        "rules": DEFAULT_RULESET,
    }])

def downgrade():
    op.execute(
        rank_rules.delete().where(
            rank_rules.c.name == DEFAULT_RULESET_NAME,
            rank_rules.c.version == DEFAULT_RULESET["version"],
        )
    )
