"""The single authoritative executor for AI actions.

For one ai_actions row:
  1. load the record and its conversation's policy flags
  2. gate (operating mode, ai_paused, approval_required, autopilot_allowed)
  3. validate the payload for its action_type and resolve channel credentials
  4. claim the record (pending/approved → executing, compare-and-set)
  5. dispatch to the channel, bounded by a timeout
  6. write, each on its own: outbound message, execution receipt,
     linked content job, final record status

A blocked or invalid action leaves the record untouched and writes nothing.
Every claimed action ends with exactly one receipt, sent or failed.
"""
import copy
import logging
from typing import Any, Dict, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, ValidationError

import db.repositories.actions as actions_repo
import db.repositories.content_jobs as content_jobs_repo
import db.repositories.conversations as conversations_repo
import db.repositories.messages as messages_repo
import db.repositories.receipts as receipts_repo
from channels import DispatchResult, resolve_envelope
from config import GatewayConfig
from db.connection import SessionScope, get_db
from gateway.dispatch import (
    PROVIDER_FOR_ACTION_TYPE,
    build_dispatch,
    dispatch_with_timeout,
    resolve_credentials,
)
from gateway.errors import ActionNotFoundError, PayloadValidationError, PersistenceError
from gateway.gating import PolicyContext, evaluate_gate
from gateway.responses import GatewayResponse
from gateway.steps import run_steps
from schemas.payloads import (
    CHANNEL_FOR_ACTION_TYPE,
    MESSAGE_ACTION_TYPES,
    ActionPayload,
    ContentRenderPayload,
    EmailSendPayload,
    parse_action_payload,
    validation_message,
)

logger = logging.getLogger(__name__)

IN_FLIGHT_STATUSES = ("executing", "sent", "failed")


class _ActionView(BaseModel):
    """The fields of an ai_actions row the gateway decides on, read once."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    conversation_id: Optional[UUID]
    organization_id: Optional[UUID]
    channel: str
    action_type: str
    status: str
    version: int
    raw_payload: Dict[str, Any]


def _as_uuid(action_id: Union[str, UUID]) -> UUID:
    if isinstance(action_id, UUID):
        return action_id
    try:
        return UUID(str(action_id))
    except ValueError:
        raise ActionNotFoundError("ai_action not found") from None


class Gateway:
    """Executes ai_actions under an injected configuration.

    ``session_factory`` yields one committed-or-rolled-back session per call;
    the gateway opens a fresh one for every write so a failed write cannot
    undo another.
    """

    def __init__(self, config: GatewayConfig, session_factory: SessionScope = get_db):
        self.config = config
        self.session_factory = session_factory

    async def execute_action(
        self, action_id: Union[str, UUID, None], *, timeout: Optional[float] = None
    ) -> GatewayResponse:
        if not action_id:
            logger.error("Missing action_id")
            return GatewayResponse.error(400, "Missing action_id", "missing_action_id")

        try:
            action, policy = await self._load(_as_uuid(action_id))
        except ActionNotFoundError as exc:
            logger.error("Action not found: %s", action_id)
            return GatewayResponse.error(exc.status_code, exc.message, exc.code)

        logger.info(
            "Processing action %s: channel=%s action_type=%s status=%s mode=%s policy=%s",
            action.id,
            action.channel,
            action.action_type,
            action.status,
            self.config.mode.value,
            policy,
        )

        decision = evaluate_gate(self.config.mode, policy, action.status)
        if not decision.allowed:
            logger.info("Blocked action %s: %s", action.id, decision.reason)
            return GatewayResponse.blocked(decision.reason)

        if action.status not in actions_repo.CLAIMABLE_STATUSES:
            reason = (
                f"already_{action.status}"
                if action.status in IN_FLIGHT_STATUSES
                else "status_not_executable"
            )
            logger.info("Skipping action %s: %s", action.id, reason)
            return GatewayResponse.blocked(reason)

        try:
            payload, credentials = await self._validate(action)
        except PayloadValidationError as exc:
            logger.warning("Action %s failed validation: %s", action.id, exc.message)
            return GatewayResponse.error(exc.status_code, exc.message, exc.code)

        async with self.session_factory() as session:
            claimed = await actions_repo.claim_for_execution(session, action.id, action.version)
        if not claimed:
            return GatewayResponse.blocked("already_executing")

        if isinstance(payload, ContentRenderPayload) and payload.job_id is not None:
            await self._mark_job_executing(payload.job_id)

        call, budget = build_dispatch(
            payload,
            credentials,
            self.config,
            timeout or self.config.dispatch_timeout_seconds,
            conversation_id=action.conversation_id,
            organization_id=action.organization_id,
        )
        result = await dispatch_with_timeout(
            call, budget, provider=PROVIDER_FOR_ACTION_TYPE[action.action_type]
        )

        await self._record(action, payload, result)

        logger.info(
            "Action %s completed: sent=%s provider=%s receipt=%s",
            action.id,
            result.sent,
            result.provider,
            result.provider_receipt_id,
        )
        return GatewayResponse(
            status_code=200,
            body={
                "ok": True,
                "sent": result.sent,
                "channel": action.channel,
                "action_type": action.action_type,
                "provider": result.provider,
                "provider_receipt_id": result.provider_receipt_id,
                "error": result.error,
            },
        )

    async def _load(self, action_id: UUID) -> tuple[_ActionView, PolicyContext]:
        async with self.session_factory() as session:
            row = await actions_repo.get_by_id(session, action_id)
            if row is None:
                raise ActionNotFoundError("ai_action not found")
            conversation = None
            if row.conversation_id is not None:
                conversation = await conversations_repo.get_by_id(session, row.conversation_id)
            action = _ActionView(
                id=row.id,
                conversation_id=row.conversation_id,
                organization_id=row.organization_id,
                channel=row.channel or "",
                action_type=row.action_type or "",
                status=row.status or "pending",
                version=row.version,
                raw_payload=copy.deepcopy(row.action_payload or {}),
            )
        return action, PolicyContext.from_conversation(conversation)

    async def _validate(self, action: _ActionView):
        expected_channel = CHANNEL_FOR_ACTION_TYPE.get(action.action_type)
        if expected_channel is None:
            raise PayloadValidationError(
                f"Unsupported action_type: {action.action_type!r}", code="unsupported_action_type"
            )
        if action.channel != expected_channel:
            raise PayloadValidationError(
                f"{action.action_type} must be sent on channel {expected_channel!r}, "
                f"not {action.channel!r}",
                code="channel_mismatch",
            )
        try:
            payload = parse_action_payload(action.action_type, action.raw_payload)
        except ValidationError as exc:
            raise PayloadValidationError(validation_message(exc)) from exc

        async with self.session_factory() as session:
            if isinstance(payload, ContentRenderPayload) and not payload.parsed:
                payload = await self._with_job_instructions(session, payload)
            credentials = await resolve_credentials(session, self.config, payload)
        return payload, credentials

    async def _with_job_instructions(self, session, payload: ContentRenderPayload):
        """Fill a job_id-only render payload with the job's parsed instructions."""
        job = await content_jobs_repo.get_by_id(session, payload.job_id)
        if job is None:
            raise PayloadValidationError(
                f"content job {payload.job_id} not found", code="content_job_not_found"
            )
        return payload.model_copy(update={"parsed": copy.deepcopy(job.parsed or {})})

    async def _mark_job_executing(self, job_id: UUID) -> None:
        async def update_content_job():
            async with self.session_factory() as session:
                await content_jobs_repo.update_status(session, job_id, "executing")

        # The action is already claimed; a failed job update must not stop the dispatch.
        await run_steps([("content_job", update_content_job)], context=f"for content job {job_id}")

    def _snapshot(
        self, action: _ActionView, payload: ActionPayload, result: DispatchResult
    ) -> Dict[str, Any]:
        snapshot: Dict[str, Any] = {
            "channel": action.channel,
            "action_type": action.action_type,
        }
        snapshot.update(copy.deepcopy(action.raw_payload))
        # the text handed to the provider, not the producer's unnormalized copy
        if action.action_type in MESSAGE_ACTION_TYPES:
            snapshot["content"] = payload.content
        if isinstance(payload, EmailSendPayload):
            snapshot["resolved_envelope"] = resolve_envelope(
                payload, self.config.default_from_email, self.config.default_email_subject
            )
        if result.detail:
            snapshot["dispatch"] = copy.deepcopy(result.detail)
        return snapshot

    async def _record(
        self, action: _ActionView, payload: ActionPayload, result: DispatchResult
    ) -> None:
        outcome = "sent" if result.sent else "failed"
        steps = []

        if action.action_type in MESSAGE_ACTION_TYPES:
            metadata: Dict[str, Any] = {
                "provider": result.provider,
                "provider_receipt_id": result.provider_receipt_id,
                "sent": result.sent,
            }
            if result.error:
                metadata["error_message"] = result.error

            async def write_message():
                async with self.session_factory() as session:
                    await messages_repo.record_outbound(
                        session,
                        action.conversation_id,
                        action.channel,
                        payload.content,
                        outcome,
                        sender_name=payload.sender_name or "AI",
                        sender_email=payload.sender_email,
                        metadata=metadata,
                    )

            steps.append(("outbound_message", write_message))

        snapshot = self._snapshot(action, payload, result)

        async def write_receipt():
            async with self.session_factory() as session:
                await receipts_repo.write_receipt(
                    session,
                    "ai_actions",
                    action.id,
                    action.channel,
                    action.action_type,
                    outcome,
                    conversation_id=action.conversation_id,
                    organization_id=action.organization_id,
                    provider=result.provider,
                    provider_receipt_id=result.provider_receipt_id,
                    payload_snapshot=snapshot,
                    error=result.error,
                )

        steps.append(("execution_receipt", write_receipt))

        if isinstance(payload, ContentRenderPayload) and payload.job_id is not None:
            job_id = payload.job_id

            async def update_content_job():
                async with self.session_factory() as session:
                    if result.sent:
                        await content_jobs_repo.update_status(
                            session,
                            job_id,
                            "completed",
                            result={**result.detail, "ai_action_id": str(action.id)},
                        )
                    else:
                        await content_jobs_repo.update_status(
                            session, job_id, "failed", error=result.error
                        )

            steps.append(("content_job", update_content_job))

        async def finish_action():
            async with self.session_factory() as session:
                finished = await actions_repo.mark_finished(session, action.id, outcome)
            if not finished:
                logger.warning("Action %s was no longer executing when finishing", action.id)

        steps.append(("action_status", finish_action))

        report = await run_steps(steps, context=f"for action {action.id}")
        if not report.ok:
            raise PersistenceError(
                f"Execution of action {action.id} was not fully recorded: {report.summary()}",
                failed_steps=[o.name for o in report.failed],
            )
