from .payloads import (
    ActionPayload,
    DmSendPayload,
    EmailSendPayload,
    WebsiteReplyPayload,
    ContentRenderPayload,
    CHANNEL_FOR_ACTION_TYPE,
    MESSAGE_ACTION_TYPES,
    parse_action_payload,
    validation_message,
)
from .requests import ExecuteActionRequest, CreateContentRequest

__all__ = [
    "ActionPayload", "DmSendPayload", "EmailSendPayload", "WebsiteReplyPayload",
    "ContentRenderPayload", "CHANNEL_FOR_ACTION_TYPE", "MESSAGE_ACTION_TYPES",
    "parse_action_payload", "validation_message",
    "ExecuteActionRequest", "CreateContentRequest",
]
