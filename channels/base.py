"""Shared dispatcher types.

A dispatcher is a plain function ``(payload, credentials, timeout) -> DispatchResult``.
It talks to exactly one provider and never touches the database: receipts,
messages and status changes are written by the orchestrator alone.
"""
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class DispatchResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    sent: bool
    provider: Optional[str] = None
    provider_receipt_id: Optional[str] = None
    error: Optional[str] = None
    detail: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def failure(cls, provider: Optional[str], error: str, **detail: Any) -> "DispatchResult":
        return cls(sent=False, provider=provider, error=error, detail=detail)


class ChannelCredentials(BaseModel):
    """Whatever a dispatcher needs to authenticate; unused fields stay None."""

    model_config = ConfigDict(frozen=True)

    access_token: Optional[str] = None
    page_id: Optional[str] = None
    api_key: Optional[str] = None
    base_url: Optional[str] = None
