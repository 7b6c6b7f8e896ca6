"""Gateway configuration.

Operating mode:
  LIVE   → may auto-send where the conversation allows it
  MANUAL → only records with status=approved are executed
  OFF    → nothing is executed

The mode is read once into a GatewayConfig and handed to the gateway, so a
test (or a second gateway in the same process) can run under a different mode
without touching the environment.

Usage:
    from config import GatewayConfig
    config = GatewayConfig.from_env()
"""
import enum
import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict

load_dotenv()

DEFAULT_FROM_EMAIL = "support@weprintwraps.com"
DEFAULT_EMAIL_SUBJECT = "WePrintWraps"
DEFAULT_GRAPH_VERSION = "v19.0"
DEFAULT_DISPATCH_TIMEOUT_SECONDS = 15.0


class OperatingMode(str, enum.Enum):
    LIVE = "LIVE"
    MANUAL = "MANUAL"
    OFF = "OFF"

    @classmethod
    def parse(cls, value: Optional[str]) -> "OperatingMode":
        """Case-insensitive parse; empty means LIVE."""
        raw = (value or cls.LIVE.value).strip().upper()
        try:
            return cls(raw)
        except ValueError:
            raise ValueError(
                f"AI_MODE must be one of {', '.join(m.value for m in cls)}. Got: '{value}'"
            ) from None


class GatewayConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    mode: OperatingMode = OperatingMode.LIVE
    default_from_email: str = DEFAULT_FROM_EMAIL
    default_email_subject: str = DEFAULT_EMAIL_SUBJECT
    resend_api_key: Optional[str] = None
    instagram_page_access_token: Optional[str] = None
    instagram_page_id: Optional[str] = None
    graph_version: str = DEFAULT_GRAPH_VERSION
    functions_base_url: Optional[str] = None
    functions_service_token: Optional[str] = None
    dispatch_timeout_seconds: float = DEFAULT_DISPATCH_TIMEOUT_SECONDS

    @classmethod
    def from_env(cls) -> "GatewayConfig":
        env = os.environ
        return cls(
            mode=OperatingMode.parse(env.get("AI_MODE")),
            default_from_email=env.get("DEFAULT_FROM_EMAIL") or DEFAULT_FROM_EMAIL,
            default_email_subject=env.get("DEFAULT_EMAIL_SUBJECT") or DEFAULT_EMAIL_SUBJECT,
            resend_api_key=env.get("RESEND_API_KEY") or None,
            instagram_page_access_token=(
                env.get("INSTAGRAM_PAGE_ACCESS_TOKEN") or env.get("INSTAGRAM_ACCESS_TOKEN") or None
            ),
            instagram_page_id=env.get("INSTAGRAM_PAGE_ID") or None,
            graph_version=env.get("META_GRAPH_VERSION") or DEFAULT_GRAPH_VERSION,
            functions_base_url=env.get("FUNCTIONS_BASE_URL") or None,
            functions_service_token=env.get("FUNCTIONS_SERVICE_TOKEN") or None,
            dispatch_timeout_seconds=float(
                env.get("DISPATCH_TIMEOUT_SECONDS") or DEFAULT_DISPATCH_TIMEOUT_SECONDS
            ),
        )

    def with_mode(self, mode: OperatingMode) -> "GatewayConfig":
        return self.model_copy(update={"mode": mode})
