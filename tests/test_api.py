"""HTTP surface tests through httpx's ASGI transport."""
from unittest.mock import MagicMock, patch

import httpx
import pytest
import pytest_asyncio

from api import create_app
from gateway import ContentRenderService, Gateway, PersistenceError

RESEND_POST = "channels.resend_email.requests.post"


@pytest_asyncio.fixture
async def client(gateway_config, db_scope):
    app = create_app(
        gateway=Gateway(gateway_config, session_factory=db_scope),
        content_service=ContentRenderService(gateway_config, session_factory=db_scope),
    )
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://gateway.test") as client:
        yield client


@pytest.mark.asyncio
async def test_execute_sends_action(client, make_conversation, make_action):
    conversation = await make_conversation("email", approval_required=False)
    action = await make_action(
        "email", "email_send", {"to": "jane@fleet.com", "content": "Hi"}, conversation=conversation
    )
    resp = MagicMock(ok=True, status_code=200)
    resp.json.return_value = {"id": "abc123"}

    with patch(RESEND_POST, return_value=resp):
        response = await client.post("/execute-ai-action", json={"action_id": str(action.id)})

    assert response.status_code == 200
    assert response.json()["provider_receipt_id"] == "abc123"


@pytest.mark.asyncio
async def test_blocked_action_is_200(client, make_action):
    action = await make_action("email", "email_send", {"to": "jane@fleet.com", "content": "Hi"})

    response = await client.post("/execute-ai-action", json={"action_id": str(action.id)})

    assert response.status_code == 200
    assert response.json() == {"blocked": True, "reason": "live_requires_approval"}


@pytest.mark.asyncio
async def test_missing_action_id_is_400(client):
    response = await client.post("/execute-ai-action", json={})
    assert response.status_code == 400
    assert response.json()["error"] == "Missing action_id"


@pytest.mark.asyncio
async def test_malformed_body_is_400(client):
    response = await client.post(
        "/execute-ai-action", content=b"not json", headers={"content-type": "application/json"}
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_unknown_action_is_404(client):
    response = await client.post(
        "/execute-ai-action", json={"action_id": "00000000-0000-0000-0000-000000000000"}
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_persistence_error_is_500(client, make_action):
    action = await make_action("email", "email_send", {"to": "jane@fleet.com", "content": "Hi"})

    with patch.object(
        Gateway,
        "execute_action",
        side_effect=PersistenceError("receipt not written", failed_steps=["execution_receipt"]),
    ):
        response = await client.post("/execute-ai-action", json={"action_id": str(action.id)})

    assert response.status_code == 500
    assert response.json() == {"error": "receipt not written", "code": "persistence_failed"}


@pytest.mark.asyncio
async def test_create_content_preview(client):
    response = await client.post(
        "/execute-create-content",
        json={"create_content_text": "platform: instagram\ncontent_type: carousel"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["preview"] is True
    assert body["parsed"] == {"platform": "instagram", "content_type": "carousel"}


@pytest.mark.asyncio
async def test_create_content_requires_text(client):
    response = await client.post("/execute-create-content", json={"mode": "execute"})
    assert response.status_code == 422
