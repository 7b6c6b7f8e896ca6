"""Conversation repository: read side of the per-thread policy store."""
import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import Conversation

logger = logging.getLogger(__name__)


async def get_by_id(session: AsyncSession, conversation_id: UUID) -> Optional[Conversation]:
    """Return the Conversation with this id, or None."""
    result = await session.execute(
        select(Conversation).where(Conversation.id == conversation_id)
    )
    return result.scalar_one_or_none()


async def create(
    session: AsyncSession,
    channel: str,
    *,
    organization_id: Optional[UUID] = None,
    subject: Optional[str] = None,
    ai_paused: bool = False,
    approval_required: bool = True,
    autopilot_allowed: bool = False,
) -> Conversation:
    """Insert a conversation with explicit gating flags."""
    conversation = Conversation(
        channel=channel,
        organization_id=organization_id,
        subject=subject,
        ai_paused=ai_paused,
        approval_required=approval_required,
        autopilot_allowed=autopilot_allowed,
    )
    session.add(conversation)
    await session.flush()
    return conversation
