from .base import ChannelCredentials, DispatchResult
from .meta_dm import send_instagram_dm
from .resend_email import send_email, resolve_envelope
from .website import record_website_reply
from .render_pipelines import (
    RENDER_PIPELINES,
    AllStrategiesFailed,
    PipelineError,
    call_pipeline,
    first_success,
    render_content,
)

__all__ = [
    "ChannelCredentials", "DispatchResult",
    "send_instagram_dm", "send_email", "resolve_envelope", "record_website_reply",
    "RENDER_PIPELINES", "AllStrategiesFailed", "PipelineError",
    "call_pipeline", "first_success", "render_content",
]
