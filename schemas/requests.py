"""Request bodies for the gateway's HTTP surface."""
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class ExecuteActionRequest(BaseModel):
    # Optional so a missing id is answered with the gateway's own 400
    action_id: Optional[str] = None


class CreateContentRequest(BaseModel):
    conversation_id: Optional[UUID] = None
    organization_id: Optional[UUID] = None
    requested_by: str = "unknown"
    agent: str = "noah_bennett"
    create_content_text: str = Field(min_length=1)
    mode: Literal["preview", "execute"] = "preview"
