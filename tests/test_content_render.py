"""CREATE_CONTENT flow tests: preview, approval hand-off, render chain, hard stops."""
import uuid
from unittest.mock import MagicMock, patch

import pytest

from config import OperatingMode
from db.repositories import actions as actions_repo
from db.repositories import content_jobs as content_jobs_repo
from db.repositories import messages as messages_repo
from db.repositories import receipts as receipts_repo
from gateway import ContentRenderService
from schemas.requests import CreateContentRequest

RENDER_POST = "channels.render_pipelines.requests.post"

BLOCK = """===CREATE_CONTENT===
content_type: reel
platform: instagram
hook: "Fleet wraps that sell"
hashtags: ["wraps", "fleet"]
===END_CREATE_CONTENT==="""

PARSED = {
    "content_type": "reel",
    "platform": "instagram",
    "hook": "Fleet wraps that sell",
    "hashtags": ["wraps", "fleet"],
}


def _response(status_code, body):
    resp = MagicMock()
    resp.ok = 200 <= status_code < 300
    resp.status_code = status_code
    resp.json.return_value = body
    resp.text = str(body)
    return resp


@pytest.fixture
def service(gateway_config, db_scope):
    return ContentRenderService(gateway_config, session_factory=db_scope)


async def _job(db_scope, job_id):
    async with db_scope() as session:
        return await content_jobs_repo.get_by_id(session, uuid.UUID(job_id))


async def _job_receipts(db_scope, job_id):
    async with db_scope() as session:
        return await receipts_repo.list_for_source(session, "content_jobs", uuid.UUID(job_id))


@pytest.mark.asyncio
async def test_preview_parses_without_side_effects(service, db_scope, make_conversation):
    conversation = await make_conversation("website", approval_required=False)
    request = CreateContentRequest(
        conversation_id=conversation.id,
        create_content_text=f"Here you go:\n{BLOCK}\nLet me know!",
        mode="preview",
    )

    with patch(RENDER_POST) as mock_post:
        result = await service.create_content(request)

    assert result.status_code == 200
    assert result.body["ok"] is True
    assert result.body["preview"] is True
    assert result.body["parsed"] == PARSED
    mock_post.assert_not_called()

    job = await _job(db_scope, result.body["job_id"])
    assert job.status == "completed"
    assert job.result == {"preview": True}
    assert job.create_content_block == BLOCK
    assert job.parsed == PARSED
    async with db_scope() as session:
        assert await messages_repo.list_for_conversation(session, conversation.id) == []
    assert await _job_receipts(db_scope, result.body["job_id"]) == []


@pytest.mark.asyncio
async def test_preview_ignores_operating_mode(service, db_scope):
    service.config = service.config.with_mode(OperatingMode.OFF)

    result = await service.create_content(
        CreateContentRequest(create_content_text="platform: tiktok", mode="preview")
    )

    assert result.status_code == 200
    assert result.body["parsed"] == {"platform": "tiktok"}


@pytest.mark.asyncio
async def test_execute_on_thread_needing_approval_is_queued(service, db_scope, make_conversation):
    """Scenario E."""
    conversation = await make_conversation("website", approval_required=True, autopilot_allowed=False)
    request = CreateContentRequest(
        conversation_id=conversation.id,
        organization_id=conversation.organization_id,
        create_content_text=BLOCK,
        mode="execute",
        requested_by="jordan",
    )

    with patch(RENDER_POST) as mock_post:
        result = await service.create_content(request)

    mock_post.assert_not_called()
    assert result.status_code == 200
    assert result.body["queued_for_approval"] is True

    job = await _job(db_scope, result.body["job_id"])
    assert job.status == "approved"
    assert job.result == {"approval_required": True, "ai_action_id": result.body["ai_action_id"]}

    async with db_scope() as session:
        action = await actions_repo.get_by_id(session, uuid.UUID(result.body["ai_action_id"]))
        pending = await actions_repo.list_pending_approval(session, conversation.organization_id)
    assert action.status == "pending"
    assert action.channel == "content"
    assert action.action_type == "content_render"
    assert action.action_payload["job_id"] == result.body["job_id"]
    assert action.action_payload["parsed"] == PARSED
    assert action.action_payload["create_content_block"] == BLOCK
    assert action.preview == "Render reel for instagram"
    assert [a.id for a in pending] == [action.id]

    (receipt,) = await _job_receipts(db_scope, result.body["job_id"])
    assert receipt.status == "pending"
    assert receipt.provider == "internal"


@pytest.mark.asyncio
async def test_execute_renders_with_primary_pipeline(service, db_scope, make_conversation):
    conversation = await make_conversation("website", approval_required=False)
    request = CreateContentRequest(
        conversation_id=conversation.id, create_content_text=BLOCK, mode="execute"
    )

    with patch(RENDER_POST, return_value=_response(200, {"task_id": "t-1"})) as mock_post:
        result = await service.create_content(request)

    assert result.status_code == 200
    assert result.body["executed"] is True
    assert result.body["usedFn"] == "execute-delegated-task"
    assert result.body["execResult"] == {"task_id": "t-1"}
    body = mock_post.call_args.kwargs["json"]
    assert body["job_id"] == result.body["job_id"]
    assert body["create_content"] == PARSED
    assert body["conversation_id"] == str(conversation.id)

    job = await _job(db_scope, result.body["job_id"])
    assert job.status == "completed"
    assert job.result == {"usedFn": "execute-delegated-task", "execResult": {"task_id": "t-1"}}
    (receipt,) = await _job_receipts(db_scope, result.body["job_id"])
    assert receipt.status == "sent"
    assert receipt.payload_snapshot["parsed"] == PARSED


@pytest.mark.asyncio
async def test_execute_falls_back_to_second_pipeline(service, db_scope, make_conversation):
    conversation = await make_conversation("website", autopilot_allowed=True)
    request = CreateContentRequest(
        conversation_id=conversation.id, create_content_text=BLOCK, mode="execute"
    )

    with patch(RENDER_POST) as mock_post:
        mock_post.side_effect = [
            _response(500, {"error": "delegation queue full"}),
            _response(200, {"content_id": "c-9"}),
        ]
        result = await service.create_content(request)

    assert result.body["usedFn"] == "hybrid-generate-content"
    assert mock_post.call_count == 2


@pytest.mark.asyncio
async def test_both_pipelines_failing_is_a_502(service, db_scope, make_conversation):
    conversation = await make_conversation("website", approval_required=False)
    request = CreateContentRequest(
        conversation_id=conversation.id, create_content_text=BLOCK, mode="execute"
    )

    with patch(RENDER_POST) as mock_post:
        mock_post.side_effect = [
            _response(500, {"error": "delegation queue full"}),
            _response(500, {"error": "generator offline"}),
        ]
        result = await service.create_content(request)

    assert result.status_code == 502
    assert result.body["ok"] is False
    assert result.body["error"] == "generator offline"
    job = await _job(db_scope, result.body["job_id"])
    assert job.status == "failed"
    assert job.error == "generator offline"
    (receipt,) = await _job_receipts(db_scope, result.body["job_id"])
    assert receipt.status == "failed"


@pytest.mark.asyncio
async def test_paused_conversation_is_a_hard_stop(service, db_scope, make_conversation):
    conversation = await make_conversation("website", ai_paused=True, approval_required=False)
    request = CreateContentRequest(
        conversation_id=conversation.id, create_content_text=BLOCK, mode="execute"
    )

    with patch(RENDER_POST) as mock_post:
        result = await service.create_content(request)

    mock_post.assert_not_called()
    assert result.status_code == 409
    assert result.body["error"] == "AI paused for this conversation"
    assert result.body["reason"] == "conversation_paused"
    job = await _job(db_scope, result.body["job_id"])
    assert job.status == "failed"
    (receipt,) = await _job_receipts(db_scope, result.body["job_id"])
    assert receipt.status == "failed"


@pytest.mark.asyncio
async def test_mode_off_is_a_hard_stop(service):
    service.config = service.config.with_mode(OperatingMode.OFF)

    result = await service.create_content(
        CreateContentRequest(create_content_text=BLOCK, mode="execute")
    )

    assert result.status_code == 409
    assert result.body["error"] == "AI mode is OFF"
