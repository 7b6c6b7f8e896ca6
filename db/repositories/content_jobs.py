"""Content job repository."""
import logging
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import ContentJob

logger = logging.getLogger(__name__)


async def create_job(
    session: AsyncSession,
    create_content_block: str,
    parsed: dict[str, Any],
    *,
    mode: str,
    agent: str,
    requested_by: str = "unknown",
    conversation_id: Optional[UUID] = None,
    organization_id: Optional[UUID] = None,
) -> ContentJob:
    """Insert a pending job echoing the raw block and its parsed fields."""
    job = ContentJob(
        conversation_id=conversation_id,
        organization_id=organization_id,
        requested_by=requested_by,
        agent=agent,
        mode=mode,
        status="pending",
        create_content_block=create_content_block,
        parsed=parsed,
        result={},
    )
    session.add(job)
    await session.flush()
    return job


async def get_by_id(session: AsyncSession, job_id: UUID) -> Optional[ContentJob]:
    """Return the ContentJob with this id, or None."""
    result = await session.execute(select(ContentJob).where(ContentJob.id == job_id))
    return result.scalar_one_or_none()


async def update_status(
    session: AsyncSession,
    job_id: UUID,
    status: str,
    *,
    result: Optional[dict[str, Any]] = None,
    error: Optional[str] = None,
) -> bool:
    """Set a job's status, and its result/error when given."""
    values: dict[str, Any] = {"status": status, "updated_at": func.now()}
    if result is not None:
        values["result"] = result
    if error is not None:
        values["error"] = error
    res = await session.execute(
        update(ContentJob)
        .where(ContentJob.id == job_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    await session.flush()
    return res.rowcount == 1
