"""CREATE_CONTENT requests: parse, gate, and render through the internal pipelines.

Same contract as the action gateway: every request gets a content_jobs row
before anything else happens, the conversation's policy decides whether the
render may run now, and every attempt leaves a receipt. A request that needs
approval becomes a pending content_render ai_action instead, which goes
through the human approval queue like any message.
"""
import logging
from typing import Any, Dict, Optional
from uuid import UUID

import db.repositories.actions as actions_repo
import db.repositories.content_jobs as content_jobs_repo
import db.repositories.conversations as conversations_repo
import db.repositories.receipts as receipts_repo
from channels import RENDER_PIPELINES, render_content
from channels.render_pipelines import PROVIDER as RENDER_PROVIDER
from config import GatewayConfig
from db.connection import SessionScope, get_db
from gateway.dispatch import dispatch_with_timeout, provider_timeout, render_credentials
from gateway.errors import PersistenceError
from gateway.gating import CONVERSATION_PAUSED, MODE_OFF, PolicyContext, evaluate_gate
from gateway.instructions import extract_block, parse_instructions
from gateway.responses import GatewayResponse
from gateway.steps import run_steps
from schemas.payloads import ContentRenderPayload
from schemas.requests import CreateContentRequest

logger = logging.getLogger(__name__)

SOURCE_TABLE = "content_jobs"
CHANNEL = "content"
ACTION_TYPE = "content_render"

_HARD_STOP_ERRORS = {
    MODE_OFF: "AI mode is OFF",
    CONVERSATION_PAUSED: "AI paused for this conversation",
}


class ContentRenderService:
    def __init__(self, config: GatewayConfig, session_factory: SessionScope = get_db):
        self.config = config
        self.session_factory = session_factory

    async def create_content(
        self, request: CreateContentRequest, *, timeout: Optional[float] = None
    ) -> GatewayResponse:
        logger.info(
            "Received create-content request: conversation=%s organization=%s agent=%s mode=%s",
            request.conversation_id,
            request.organization_id,
            request.agent,
            request.mode,
        )
        raw_block = extract_block(request.create_content_text) or request.create_content_text
        instructions = parse_instructions(raw_block)
        parsed = instructions.fields
        if instructions.dropped_lines:
            logger.warning(
                "Dropped %d instruction line(s) without a colon: %r",
                len(instructions.dropped_lines),
                instructions.dropped_lines,
            )

        async with self.session_factory() as session:
            job = await content_jobs_repo.create_job(
                session,
                raw_block,
                parsed,
                mode=request.mode,
                agent=request.agent,
                requested_by=request.requested_by,
                conversation_id=request.conversation_id,
                organization_id=request.organization_id,
            )
            job_id = job.id
        logger.info("Created content job %s", job_id)

        if request.mode == "preview":
            async with self.session_factory() as session:
                await content_jobs_repo.update_status(
                    session, job_id, "completed", result={"preview": True}
                )
            return GatewayResponse(
                status_code=200,
                body={"ok": True, "job_id": str(job_id), "parsed": parsed, "preview": True},
            )

        policy = await self._policy(request.conversation_id)
        # A freshly created job has never been approved.
        decision = evaluate_gate(self.config.mode, policy, "pending")
        logger.info("Content job %s gate: %s (policy=%s)", job_id, decision, policy)

        if not decision.allowed and decision.needs_approval:
            return await self._queue_for_approval(request, job_id, raw_block, parsed)
        if not decision.allowed:
            return await self._hard_stop(request, job_id, parsed, decision.reason)
        return await self._render(request, job_id, parsed, timeout)

    async def _policy(self, conversation_id: Optional[UUID]) -> PolicyContext:
        if conversation_id is None:
            return PolicyContext()
        async with self.session_factory() as session:
            conversation = await conversations_repo.get_by_id(session, conversation_id)
        return PolicyContext.from_conversation(conversation)

    def _receipt_step(
        self,
        request: CreateContentRequest,
        job_id: UUID,
        status: str,
        snapshot: Dict[str, Any],
        error: Optional[str] = None,
    ):
        async def write_receipt():
            async with self.session_factory() as session:
                await receipts_repo.write_receipt(
                    session,
                    SOURCE_TABLE,
                    job_id,
                    CHANNEL,
                    ACTION_TYPE,
                    status,
                    conversation_id=request.conversation_id,
                    organization_id=request.organization_id,
                    provider=RENDER_PROVIDER,
                    payload_snapshot=snapshot,
                    error=error,
                )

        return ("execution_receipt", write_receipt)

    def _job_step(self, job_id: UUID, status: str, **fields: Any):
        async def update_job():
            async with self.session_factory() as session:
                await content_jobs_repo.update_status(session, job_id, status, **fields)

        return ("content_job", update_job)

    async def _finish(self, job_id: UUID, steps) -> None:
        report = await run_steps(steps, context=f"for content job {job_id}")
        if not report.ok:
            raise PersistenceError(
                f"Content job {job_id} was not fully recorded: {report.summary()}",
                failed_steps=[o.name for o in report.failed],
            )

    async def _hard_stop(
        self, request: CreateContentRequest, job_id: UUID, parsed: Dict[str, Any], reason: str
    ) -> GatewayResponse:
        error = _HARD_STOP_ERRORS.get(reason, reason)
        logger.info("Content job %s refused: %s", job_id, reason)
        await self._finish(
            job_id,
            [
                self._job_step(job_id, "failed", error=error),
                self._receipt_step(request, job_id, "failed", {"parsed": parsed}, error=error),
            ],
        )
        return GatewayResponse(
            status_code=409,
            body={"ok": False, "job_id": str(job_id), "error": error, "reason": reason},
        )

    async def _queue_for_approval(
        self,
        request: CreateContentRequest,
        job_id: UUID,
        raw_block: str,
        parsed: Dict[str, Any],
    ) -> GatewayResponse:
        async with self.session_factory() as session:
            action = await actions_repo.create_action(
                session,
                CHANNEL,
                ACTION_TYPE,
                {
                    "job_id": str(job_id),
                    "parsed": parsed,
                    "create_content_block": raw_block,
                },
                conversation_id=request.conversation_id,
                organization_id=request.organization_id,
                status="pending",
                preview=(
                    f"Render {parsed.get('content_type') or 'content'} "
                    f"for {parsed.get('platform') or 'platform'}"
                ),
            )
            action_id = action.id

        await self._finish(
            job_id,
            [
                self._job_step(
                    job_id,
                    "approved",
                    result={"approval_required": True, "ai_action_id": str(action_id)},
                ),
                self._receipt_step(
                    request,
                    job_id,
                    "pending",
                    {"job_id": str(job_id), "ai_action_id": str(action_id), "parsed": parsed},
                ),
            ],
        )
        logger.info("Content job %s queued for approval as action %s", job_id, action_id)
        return GatewayResponse(
            status_code=200,
            body={
                "ok": True,
                "job_id": str(job_id),
                "queued_for_approval": True,
                "ai_action_id": str(action_id),
            },
        )

    async def _render(
        self,
        request: CreateContentRequest,
        job_id: UUID,
        parsed: Dict[str, Any],
        timeout: Optional[float],
    ) -> GatewayResponse:
        async with self.session_factory() as session:
            await content_jobs_repo.update_status(session, job_id, "executing")

        per_call = timeout or self.config.dispatch_timeout_seconds
        payload = ContentRenderPayload(action_type=ACTION_TYPE, job_id=job_id, parsed=parsed)

        def call():
            return render_content(
                payload,
                render_credentials(self.config),
                provider_timeout(per_call),
                conversation_id=request.conversation_id,
                organization_id=request.organization_id,
            )

        result = await dispatch_with_timeout(
            call, per_call * len(RENDER_PIPELINES), provider=RENDER_PROVIDER
        )

        if not result.sent:
            logger.error("Both render pipelines failed for job %s: %s", job_id, result.error)
            await self._finish(
                job_id,
                [
                    self._job_step(job_id, "failed", error=result.error),
                    self._receipt_step(
                        request,
                        job_id,
                        "failed",
                        {"parsed": parsed, **result.detail},
                        error=result.error,
                    ),
                ],
            )
            return GatewayResponse(
                status_code=502,
                body={"ok": False, "job_id": str(job_id), "error": result.error},
            )

        used_fn = result.detail["usedFn"]
        exec_result = result.detail["execResult"]
        await self._finish(
            job_id,
            [
                self._job_step(
                    job_id, "completed", result={"usedFn": used_fn, "execResult": exec_result}
                ),
                self._receipt_step(
                    request,
                    job_id,
                    "sent",
                    {"usedFn": used_fn, "execResult": exec_result, "parsed": parsed},
                ),
            ],
        )
        logger.info("Content job %s rendered via %s", job_id, used_fn)
        return GatewayResponse(
            status_code=200,
            body={
                "ok": True,
                "job_id": str(job_id),
                "executed": True,
                "usedFn": used_fn,
                "execResult": exec_result,
            },
        )
