"""SQLAlchemy 2.0 ORM models for the AI action execution gateway.

Covers 6 tables across 2 schemas:
  - ops: conversations, ai_actions, messages, content_jobs, channel_credentials
  - audit: execution_receipts
"""

import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import (
    UUID,
    Boolean,
    CheckConstraint,
    DateTime,
    Integer,
    JSON,
    Text,
    ForeignKey,
    Index,
    false,
    true,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func


# ---------------------------------------------------------------------------
# Shared base
# ---------------------------------------------------------------------------


class Base(DeclarativeBase):
    pass


# ---------------------------------------------------------------------------
# Enumerated values used in CHECK constraints
# ---------------------------------------------------------------------------

ACTION_STATUSES = (
    "pending",
    "approved",
    "executing",
    "sent",
    "failed",
    "rejected",
)

CHANNELS = ("social_dm", "email", "website", "content")

ACTION_TYPES = ("dm_send", "email_send", "website_reply", "content_render")

RECEIPT_STATUSES = ("sent", "failed", "pending")

CONTENT_JOB_STATUSES = ("pending", "approved", "executing", "completed", "failed")


def _in_check(column: str, values: tuple[str, ...]) -> str:
    return f"{column} IN (" + ", ".join(f"'{v}'" for v in values) + ")"


# ===========================================================================
# Schema: ops
# ===========================================================================


class Conversation(Base):
    """ops.conversations — customer thread carrying the per-thread gating flags."""

    __tablename__ = "conversations"
    __table_args__ = {"schema": "ops"}

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    organization_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), nullable=True
    )
    channel: Mapped[str] = mapped_column(Text, nullable=False)
    subject: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ai_paused: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=false(), nullable=False
    )
    approval_required: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default=true(), nullable=False
    )
    autopilot_allowed: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=false(), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationships
    actions: Mapped[list["AiAction"]] = relationship(
        "AiAction", back_populates="conversation"
    )
    messages: Mapped[list["Message"]] = relationship(
        "Message", back_populates="conversation"
    )


class AiAction(Base):
    """ops.ai_actions — one proposed outbound or rendering action.

    ``version`` is bumped on every status transition; the gateway only moves a
    record into ``executing`` when both the prior status and the version it
    read still hold.
    """

    __tablename__ = "ai_actions"
    __table_args__ = (
        CheckConstraint(_in_check("status", ACTION_STATUSES), name="ck_action_status"),
        CheckConstraint(_in_check("channel", CHANNELS), name="ck_action_channel"),
        CheckConstraint(_in_check("action_type", ACTION_TYPES), name="ck_action_type"),
        Index("ix_ai_actions_status", "status"),
        {"schema": "ops"},
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    conversation_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("ops.conversations.id", ondelete="SET NULL"),
        nullable=True,
    )
    organization_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), nullable=True
    )
    channel: Mapped[str] = mapped_column(Text, nullable=False)
    action_type: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        Text, nullable=False, default="pending", server_default="pending"
    )
    action_payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    preview: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    version: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1, server_default="1"
    )
    approved_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    approved_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    executed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationship
    conversation: Mapped[Optional["Conversation"]] = relationship(
        "Conversation", back_populates="actions"
    )


class Message(Base):
    """ops.messages — conversation messages; the gateway writes outbound rows only."""

    __tablename__ = "messages"
    __table_args__ = (
        CheckConstraint("direction IN ('inbound', 'outbound')", name="ck_message_direction"),
        {"schema": "ops"},
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    conversation_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("ops.conversations.id", ondelete="CASCADE"),
        nullable=True,
    )
    direction: Mapped[str] = mapped_column(Text, nullable=False)
    channel: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    sender_type: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    sender_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    sender_email: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    sent_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    # "metadata" is reserved on declarative classes
    message_metadata: Mapped[Optional[dict[str, Any]]] = mapped_column(
        "metadata", JSON, nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    conversation: Mapped[Optional["Conversation"]] = relationship(
        "Conversation", back_populates="messages"
    )


class ContentJob(Base):
    """ops.content_jobs — a parsed CREATE_CONTENT request and its render outcome."""

    __tablename__ = "content_jobs"
    __table_args__ = (
        CheckConstraint(_in_check("status", CONTENT_JOB_STATUSES), name="ck_content_job_status"),
        CheckConstraint("mode IN ('preview', 'execute')", name="ck_content_job_mode"),
        {"schema": "ops"},
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    conversation_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("ops.conversations.id", ondelete="SET NULL"),
        nullable=True,
    )
    organization_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), nullable=True
    )
    requested_by: Mapped[str] = mapped_column(Text, nullable=False, server_default="unknown")
    agent: Mapped[str] = mapped_column(Text, nullable=False)
    mode: Mapped[str] = mapped_column(Text, nullable=False, server_default="preview")
    status: Mapped[str] = mapped_column(
        Text, nullable=False, default="pending", server_default="pending"
    )
    create_content_block: Mapped[str] = mapped_column(Text, nullable=False)
    parsed: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    result: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class ChannelCredential(Base):
    """ops.channel_credentials — stored provider tokens (latest row wins)."""

    __tablename__ = "channel_credentials"
    __table_args__ = {"schema": "ops"}

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    provider: Mapped[str] = mapped_column(Text, nullable=False)
    page_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    page_access_token: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


# ===========================================================================
# Schema: audit
# ===========================================================================


class ExecutionReceipt(Base):
    """audit.execution_receipts — write-once record of one dispatch attempt."""

    __tablename__ = "execution_receipts"
    __table_args__ = (
        CheckConstraint(_in_check("status", RECEIPT_STATUSES), name="ck_receipt_status"),
        CheckConstraint(
            "source_table IN ('ai_actions', 'content_jobs')",
            name="ck_receipt_source_table",
        ),
        Index("ix_receipts_source", "source_table", "source_id"),
        {"schema": "audit"},
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    conversation_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), nullable=True
    )
    organization_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), nullable=True
    )
    source_table: Mapped[str] = mapped_column(Text, nullable=False)
    source_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), nullable=True
    )
    channel: Mapped[str] = mapped_column(Text, nullable=False)
    action_type: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False)
    provider: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    provider_receipt_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    payload_snapshot: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
