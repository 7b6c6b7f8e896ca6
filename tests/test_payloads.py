"""Unit tests for action payload validation."""
import uuid

import pytest
from pydantic import ValidationError

from schemas.payloads import (
    ContentRenderPayload,
    DmSendPayload,
    EmailSendPayload,
    WebsiteReplyPayload,
    parse_action_payload,
    validation_message,
)
from schemas.requests import CreateContentRequest


def _message(action_type, raw):
    with pytest.raises(ValidationError) as exc_info:
        parse_action_payload(action_type, raw)
    return validation_message(exc_info.value)


class TestMessagePayloads:
    def test_email_payload_resolves_variant_and_aliases(self):
        payload = parse_action_payload(
            "email_send",
            {"to": "jane@fleet.com", "from": "sales@weprintwraps.com", "message": "Hi Jane"},
        )
        assert isinstance(payload, EmailSendPayload)
        assert payload.content == "Hi Jane"
        assert payload.from_ == "sales@weprintwraps.com"
        assert payload.subject is None
        assert payload.sender_name == "AI"

    def test_dm_recipient_aliases(self):
        for key in ("recipient_id", "sender_id", "igsid"):
            payload = parse_action_payload("dm_send", {key: "1789", "content": "Hey"})
            assert isinstance(payload, DmSendPayload)
            assert payload.recipient_id == "1789"

    def test_agent_name_becomes_sender_name(self):
        payload = parse_action_payload("website_reply", {"content": "Hi", "agent_name": "Jordan"})
        assert isinstance(payload, WebsiteReplyPayload)
        assert payload.sender_name == "Jordan"

    def test_unknown_keys_are_kept(self):
        payload = parse_action_payload("website_reply", {"content": "Hi", "thread_ref": "abc"})
        assert payload.model_extra["thread_ref"] == "abc"

    def test_missing_content(self):
        assert _message("website_reply", {"content": "   "}) == "Missing content in action_payload"

    def test_missing_email_recipient(self):
        assert _message("email_send", {"content": "Hi"}) == "Missing email recipient (to)"

    def test_missing_dm_recipient(self):
        assert _message("dm_send", {"content": "Hi"}) == "Missing recipient_id in action_payload"

    def test_none_payload_is_invalid(self):
        assert _message("email_send", None) == "Missing content in action_payload"


class TestContentRenderPayload:
    def test_job_id_is_enough(self):
        job_id = uuid.uuid4()
        payload = parse_action_payload("content_render", {"job_id": str(job_id)})
        assert isinstance(payload, ContentRenderPayload)
        assert payload.job_id == job_id

    def test_needs_job_id_or_parsed(self):
        assert _message("content_render", {}) == "content_render payload needs job_id or parsed"


class TestCreateContentRequest:
    def test_defaults(self):
        request = CreateContentRequest(create_content_text="platform: instagram")
        assert request.requested_by == "unknown"
        assert request.agent == "noah_bennett"
        assert request.mode == "preview"

    def test_rejects_empty_text_and_unknown_mode(self):
        with pytest.raises(ValidationError):
            CreateContentRequest(create_content_text="")
        with pytest.raises(ValidationError):
            CreateContentRequest(create_content_text="x", mode="publish")
