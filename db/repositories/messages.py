"""Outbound message repository."""
import logging
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import Message

logger = logging.getLogger(__name__)


async def record_outbound(
    session: AsyncSession,
    conversation_id: Optional[UUID],
    channel: str,
    content: str,
    status: str,
    *,
    sender_name: str = "AI",
    sender_email: Optional[str] = None,
    metadata: Optional[dict[str, Any]] = None,
) -> Message:
    """Persist an AI-authored outbound message with its delivery status."""
    message = Message(
        conversation_id=conversation_id,
        direction="outbound",
        channel=channel,
        content=content,
        sender_type="ai",
        sender_name=sender_name,
        sender_email=sender_email,
        status=status,
        sent_at=datetime.now(timezone.utc),
        message_metadata=metadata or {},
    )
    session.add(message)
    await session.flush()
    return message


async def list_for_conversation(
    session: AsyncSession, conversation_id: UUID
) -> list[Message]:
    """Return the conversation's messages in send order."""
    result = await session.execute(
        select(Message)
        .where(Message.conversation_id == conversation_id)
        .order_by(Message.created_at)
    )
    return list(result.scalars().all())
