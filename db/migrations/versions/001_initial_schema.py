"""Initial schema: ops and audit tables.

Revision ID: 001
Revises:
Create Date: 2026-10-12

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute("CREATE SCHEMA IF NOT EXISTS ops")
    op.execute("CREATE SCHEMA IF NOT EXISTS audit")

    # ─── Ops Schema ──────────────────────────────────────────────────────────

    op.create_table(
        "conversations",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("channel", sa.Text, nullable=False),
        sa.Column("subject", sa.Text, nullable=True),
        sa.Column("ai_paused", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("approval_required", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("autopilot_allowed", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        schema="ops",
    )

    op.create_table(
        "ai_actions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("conversation_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("channel", sa.Text, nullable=False),
        sa.Column("action_type", sa.Text, nullable=False),
        sa.Column("status", sa.Text, nullable=False, server_default="pending"),
        sa.Column("action_payload", sa.JSON, nullable=False),
        sa.Column("preview", sa.Text, nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_by", sa.Text, nullable=True),
        sa.Column("executed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint(
            "status IN ('pending', 'approved', 'executing', 'sent', 'failed', 'rejected')",
            name="ck_action_status",
        ),
        sa.CheckConstraint(
            "channel IN ('social_dm', 'email', 'website', 'content')",
            name="ck_action_channel",
        ),
        sa.CheckConstraint(
            "action_type IN ('dm_send', 'email_send', 'website_reply', 'content_render')",
            name="ck_action_type",
        ),
        sa.ForeignKeyConstraint(
            ["conversation_id"], ["ops.conversations.id"], ondelete="SET NULL"
        ),
        schema="ops",
    )
    op.create_index("ix_ai_actions_status", "ai_actions", ["status"], schema="ops")

    op.create_table(
        "messages",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("conversation_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("direction", sa.Text, nullable=False),
        sa.Column("channel", sa.Text, nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("sender_type", sa.Text, nullable=True),
        sa.Column("sender_name", sa.Text, nullable=True),
        sa.Column("sender_email", sa.Text, nullable=True),
        sa.Column("status", sa.Text, nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("metadata", sa.JSON, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("direction IN ('inbound', 'outbound')", name="ck_message_direction"),
        sa.ForeignKeyConstraint(
            ["conversation_id"], ["ops.conversations.id"], ondelete="CASCADE"
        ),
        schema="ops",
    )

    op.create_table(
        "content_jobs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("conversation_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("requested_by", sa.Text, nullable=False, server_default="unknown"),
        sa.Column("agent", sa.Text, nullable=False),
        sa.Column("mode", sa.Text, nullable=False, server_default="preview"),
        sa.Column("status", sa.Text, nullable=False, server_default="pending"),
        sa.Column("create_content_block", sa.Text, nullable=False),
        sa.Column("parsed", sa.JSON, nullable=False),
        sa.Column("result", sa.JSON, nullable=False),
        sa.Column("error", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint(
            "status IN ('pending', 'approved', 'executing', 'completed', 'failed')",
            name="ck_content_job_status",
        ),
        sa.CheckConstraint("mode IN ('preview', 'execute')", name="ck_content_job_mode"),
        sa.ForeignKeyConstraint(
            ["conversation_id"], ["ops.conversations.id"], ondelete="SET NULL"
        ),
        schema="ops",
    )

    op.create_table(
        "channel_credentials",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("provider", sa.Text, nullable=False),
        sa.Column("page_id", sa.Text, nullable=True),
        sa.Column("page_access_token", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        schema="ops",
    )

    # ─── Audit Schema ────────────────────────────────────────────────────────

    op.create_table(
        "execution_receipts",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("conversation_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("source_table", sa.Text, nullable=False),
        sa.Column("source_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("channel", sa.Text, nullable=False),
        sa.Column("action_type", sa.Text, nullable=False),
        sa.Column("status", sa.Text, nullable=False),
        sa.Column("provider", sa.Text, nullable=True),
        sa.Column("provider_receipt_id", sa.Text, nullable=True),
        sa.Column("payload_snapshot", sa.JSON, nullable=False),
        sa.Column("error", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("status IN ('sent', 'failed', 'pending')", name="ck_receipt_status"),
        sa.CheckConstraint(
            "source_table IN ('ai_actions', 'content_jobs')",
            name="ck_receipt_source_table",
        ),
        schema="audit",
    )
    op.create_index(
        "ix_receipts_source",
        "execution_receipts",
        ["source_table", "source_id"],
        schema="audit",
    )


def downgrade() -> None:
    op.drop_index("ix_receipts_source", table_name="execution_receipts", schema="audit")
    op.drop_index("ix_ai_actions_status", table_name="ai_actions", schema="ops")

    op.drop_table("execution_receipts", schema="audit")
    op.drop_table("channel_credentials", schema="ops")
    op.drop_table("content_jobs", schema="ops")
    op.drop_table("messages", schema="ops")
    op.drop_table("ai_actions", schema="ops")
    op.drop_table("conversations", schema="ops")
