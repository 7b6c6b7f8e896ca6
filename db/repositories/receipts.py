"""Execution receipt repository (insert and query only).

Receipts are an audit log: nothing in this module updates or deletes a row.
"""
import logging
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import ExecutionReceipt

logger = logging.getLogger(__name__)


async def write_receipt(
    session: AsyncSession,
    source_table: str,
    source_id: Optional[UUID],
    channel: str,
    action_type: str,
    status: str,
    *,
    conversation_id: Optional[UUID] = None,
    organization_id: Optional[UUID] = None,
    provider: Optional[str] = None,
    provider_receipt_id: Optional[str] = None,
    payload_snapshot: Optional[dict[str, Any]] = None,
    error: Optional[str] = None,
) -> ExecutionReceipt:
    """Append one receipt for a dispatch attempt."""
    receipt = ExecutionReceipt(
        conversation_id=conversation_id,
        organization_id=organization_id,
        source_table=source_table,
        source_id=source_id,
        channel=channel,
        action_type=action_type,
        status=status,
        provider=provider,
        provider_receipt_id=provider_receipt_id,
        payload_snapshot=payload_snapshot or {},
        error=error,
    )
    session.add(receipt)
    await session.flush()
    logger.info(
        "Execution receipt written: %s/%s status=%s provider=%s",
        source_table,
        source_id,
        status,
        provider,
    )
    return receipt


async def list_for_source(
    session: AsyncSession, source_table: str, source_id: UUID
) -> list[ExecutionReceipt]:
    """Return every receipt for one action record or content job, oldest first."""
    result = await session.execute(
        select(ExecutionReceipt)
        .where(ExecutionReceipt.source_table == source_table)
        .where(ExecutionReceipt.source_id == source_id)
        .order_by(ExecutionReceipt.created_at)
    )
    return list(result.scalars().all())


async def list_recent(
    session: AsyncSession,
    *,
    conversation_id: Optional[UUID] = None,
    organization_id: Optional[UUID] = None,
    since: Optional[datetime] = None,
    limit: int = 100,
) -> list[ExecutionReceipt]:
    """Return receipts for the dashboards, newest first."""
    stmt = select(ExecutionReceipt)
    if conversation_id is not None:
        stmt = stmt.where(ExecutionReceipt.conversation_id == conversation_id)
    if organization_id is not None:
        stmt = stmt.where(ExecutionReceipt.organization_id == organization_id)
    if since is not None:
        stmt = stmt.where(ExecutionReceipt.created_at >= since)
    result = await session.execute(
        stmt.order_by(ExecutionReceipt.created_at.desc()).limit(limit)
    )
    return list(result.scalars().all())
