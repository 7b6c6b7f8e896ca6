"""AI action repository: lifecycle transitions guarded by status and version."""
import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from dateutil.relativedelta import relativedelta
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import AiAction

logger = logging.getLogger(__name__)

CLAIMABLE_STATUSES = ("pending", "approved")
TERMINAL_STATUSES = ("sent", "failed")


async def get_by_id(session: AsyncSession, action_id: UUID) -> Optional[AiAction]:
    """Return the AiAction with this id, or None."""
    result = await session.execute(select(AiAction).where(AiAction.id == action_id))
    return result.scalar_one_or_none()


async def create_action(
    session: AsyncSession,
    channel: str,
    action_type: str,
    action_payload: dict,
    *,
    conversation_id: Optional[UUID] = None,
    organization_id: Optional[UUID] = None,
    status: str = "pending",
    preview: Optional[str] = None,
) -> AiAction:
    """Insert a new action record (producers and the content-render hand-off use this)."""
    action = AiAction(
        conversation_id=conversation_id,
        organization_id=organization_id,
        channel=channel,
        action_type=action_type,
        action_payload=action_payload,
        status=status,
        preview=preview,
    )
    session.add(action)
    await session.flush()
    return action


async def claim_for_execution(
    session: AsyncSession, action_id: UUID, expected_version: int
) -> bool:
    """Move a pending/approved action into ``executing``.

    Compare-and-set: the update only matches while the record is still
    claimable and still carries the version the caller read. Returns False when
    another invocation got there first.
    """
    result = await session.execute(
        update(AiAction)
        .where(AiAction.id == action_id)
        .where(AiAction.status.in_(CLAIMABLE_STATUSES))
        .where(AiAction.version == expected_version)
        .values(
            status="executing",
            executed_at=datetime.now(timezone.utc),
            version=AiAction.version + 1,
        )
        .execution_options(synchronize_session=False)
    )
    await session.flush()
    claimed = result.rowcount == 1
    if not claimed:
        logger.info("Action %s was not claimable at version %d", action_id, expected_version)
    return claimed


async def mark_finished(session: AsyncSession, action_id: UUID, status: str) -> bool:
    """Move an executing action to its terminal status (``sent`` or ``failed``)."""
    if status not in TERMINAL_STATUSES:
        raise ValueError(f"Not a terminal action status: {status!r}")
    result = await session.execute(
        update(AiAction)
        .where(AiAction.id == action_id)
        .where(AiAction.status == "executing")
        .values(
            status=status,
            executed_at=datetime.now(timezone.utc),
            version=AiAction.version + 1,
        )
        .execution_options(synchronize_session=False)
    )
    await session.flush()
    return result.rowcount == 1


async def approve(
    session: AsyncSession, action_id: UUID, approved_by: Optional[str] = None
) -> bool:
    """Operator approval: pending → approved."""
    result = await session.execute(
        update(AiAction)
        .where(AiAction.id == action_id)
        .where(AiAction.status == "pending")
        .values(
            status="approved",
            approved_at=datetime.now(timezone.utc),
            approved_by=approved_by,
            version=AiAction.version + 1,
        )
        .execution_options(synchronize_session=False)
    )
    await session.flush()
    return result.rowcount == 1


async def requeue_failed(
    session: AsyncSession, action_id: UUID, approved_by: Optional[str] = None
) -> bool:
    """Explicit re-attempt: failed → approved, so the next invocation dispatches again.

    The earlier receipt stays as it was; the re-attempt writes its own.
    """
    result = await session.execute(
        update(AiAction)
        .where(AiAction.id == action_id)
        .where(AiAction.status == "failed")
        .values(
            status="approved",
            approved_at=datetime.now(timezone.utc),
            approved_by=approved_by,
            version=AiAction.version + 1,
        )
        .execution_options(synchronize_session=False)
    )
    await session.flush()
    requeued = result.rowcount == 1
    if requeued:
        logger.info("Requeued failed action %s for another attempt", action_id)
    return requeued


async def list_pending_approval(
    session: AsyncSession, organization_id: Optional[UUID] = None, limit: int = 50
) -> list[AiAction]:
    """Return pending actions (oldest first) for the human approval queue."""
    stmt = select(AiAction).where(AiAction.status == "pending")
    if organization_id is not None:
        stmt = stmt.where(AiAction.organization_id == organization_id)
    result = await session.execute(stmt.order_by(AiAction.created_at).limit(limit))
    return list(result.scalars().all())


async def list_stuck(session: AsyncSession, older_than_minutes: int = 15) -> list[AiAction]:
    """Return actions left in ``executing`` longer than the given age.

    A gateway process that crashed mid-dispatch leaves its record here. A
    timed-out dispatch does not: its record is finished as failed while the
    provider call may still be running in its worker thread.
    """
    cutoff = datetime.now(timezone.utc) - relativedelta(minutes=older_than_minutes)
    result = await session.execute(
        select(AiAction)
        .where(AiAction.status == "executing")
        .where(AiAction.executed_at <= cutoff)
        .order_by(AiAction.executed_at)
    )
    return list(result.scalars().all())
