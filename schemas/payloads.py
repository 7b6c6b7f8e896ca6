"""Action payload schemas, one variant per action_type.

Producers store free-form JSON in ai_actions.action_payload. The gateway
validates it only at dispatch time, by tagging the raw dict with the record's
action_type and parsing it through the discriminated union below. Unknown keys
are kept (extra="allow") so the receipt snapshot still shows everything the
producer sent.
"""
from typing import Annotated, Any, Literal, Optional, Union
from uuid import UUID

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
    model_validator,
)

# Channel family each action type must be dispatched on.
CHANNEL_FOR_ACTION_TYPE = {
    "dm_send": "social_dm",
    "email_send": "email",
    "website_reply": "website",
    "content_render": "content",
}

MESSAGE_ACTION_TYPES = ("dm_send", "email_send", "website_reply")


def _first_text(data: dict, *keys: str) -> str:
    for key in keys:
        value = data.get(key)
        if value not in (None, ""):
            return str(value).strip()
    return ""


class _ActionPayload(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class _MessagePayload(_ActionPayload):
    content: str
    sender_name: Optional[str] = None
    sender_email: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _resolve_content(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = {
                **data,
                "content": _first_text(data, "content", "message"),
                "sender_name": _first_text(data, "sender_name", "agent_name") or "AI",
            }
        return data

    @field_validator("content")
    @classmethod
    def _content_required(cls, value: str) -> str:
        if not value:
            raise ValueError("Missing content in action_payload")
        return value


class DmSendPayload(_MessagePayload):
    action_type: Literal["dm_send"]
    recipient_id: str

    @model_validator(mode="before")
    @classmethod
    def _resolve_recipient(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = {**data, "recipient_id": _first_text(data, "recipient_id", "sender_id", "igsid")}
        return data

    @field_validator("recipient_id")
    @classmethod
    def _recipient_required(cls, value: str) -> str:
        if not value:
            raise ValueError("Missing recipient_id in action_payload")
        return value


class EmailSendPayload(_MessagePayload):
    action_type: Literal["email_send"]
    to: str
    from_: Optional[str] = Field(default=None, alias="from")
    subject: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _resolve_addresses(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = {
                **data,
                "to": _first_text(data, "to"),
                "from": _first_text(data, "from") or None,
                "subject": _first_text(data, "subject") or None,
            }
        return data

    @field_validator("to")
    @classmethod
    def _recipient_required(cls, value: str) -> str:
        if not value:
            raise ValueError("Missing email recipient (to)")
        return value


class WebsiteReplyPayload(_MessagePayload):
    action_type: Literal["website_reply"]


class ContentRenderPayload(_ActionPayload):
    action_type: Literal["content_render"]
    job_id: Optional[UUID] = None
    parsed: dict[str, Any] = Field(default_factory=dict)
    create_content_block: Optional[str] = None

    @model_validator(mode="after")
    def _job_or_parsed(self) -> "ContentRenderPayload":
        if self.job_id is None and not self.parsed:
            raise ValueError("content_render payload needs job_id or parsed")
        return self


ActionPayload = Annotated[
    Union[DmSendPayload, EmailSendPayload, WebsiteReplyPayload, ContentRenderPayload],
    Field(discriminator="action_type"),
]

_ADAPTER: TypeAdapter[ActionPayload] = TypeAdapter(ActionPayload)


def parse_action_payload(action_type: str, raw: Optional[dict]) -> ActionPayload:
    """Validate a stored payload against its action_type's contract.

    Raises pydantic.ValidationError; use ``validation_message`` for a
    one-line description.
    """
    return _ADAPTER.validate_python({**(raw or {}), "action_type": action_type})


def validation_message(exc: ValidationError) -> str:
    """Collapse a ValidationError into the message of its first problem."""
    errors = exc.errors()
    if not errors:
        return str(exc)
    first = errors[0]
    original = (first.get("ctx") or {}).get("error")
    if original is not None:
        return str(original)
    loc = ".".join(str(part) for part in first.get("loc", ()) if part != "action_type")
    return f"{loc}: {first['msg']}" if loc else first["msg"]
