"""Gateway response envelopes (HTTP status + JSON body)."""
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class GatewayResponse(BaseModel):
    status_code: int
    body: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def blocked(cls, reason: str) -> "GatewayResponse":
        # A refusal is a successful gate outcome, hence 200.
        return cls(status_code=200, body={"blocked": True, "reason": reason})

    @classmethod
    def error(cls, status_code: int, message: str, code: Optional[str] = None) -> "GatewayResponse":
        body: Dict[str, Any] = {"error": message}
        if code:
            body["code"] = code
        return cls(status_code=status_code, body=body)

    @property
    def is_blocked(self) -> bool:
        return bool(self.body.get("blocked"))
