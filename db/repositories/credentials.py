"""Stored channel credentials."""
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import ChannelCredential

logger = logging.getLogger(__name__)


async def get_latest(session: AsyncSession, provider: str) -> Optional[ChannelCredential]:
    """Return the most recently stored credential for a provider, or None."""
    result = await session.execute(
        select(ChannelCredential)
        .where(ChannelCredential.provider == provider)
        .order_by(ChannelCredential.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def store(
    session: AsyncSession,
    provider: str,
    *,
    page_id: Optional[str] = None,
    page_access_token: Optional[str] = None,
) -> ChannelCredential:
    """Insert a credential row; newer rows shadow older ones."""
    credential = ChannelCredential(
        provider=provider, page_id=page_id, page_access_token=page_access_token
    )
    session.add(credential)
    await session.flush()
    return credential
