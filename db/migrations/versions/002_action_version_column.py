"""Add ai_actions.version for compare-and-set claims.

Revision ID: 002
Revises: 001
Create Date: 2026-10-14
"""
from alembic import op
import sqlalchemy as sa

revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column(
        "ai_actions",
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        schema="ops",
    )


def downgrade() -> None:
    op.drop_column("ai_actions", "version", schema="ops")
