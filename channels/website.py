"""Website chat replies.

There is no provider behind this channel: the reply becomes visible once the
orchestrator stores it as an outbound message, so the dispatch itself cannot
fail after validation.
"""
import time

from channels.base import ChannelCredentials, DispatchResult
from schemas.payloads import WebsiteReplyPayload

PROVIDER = "internal"


def record_website_reply(
    payload: WebsiteReplyPayload,
    credentials: ChannelCredentials,
    timeout: float = 15,
) -> DispatchResult:
    return DispatchResult(
        sent=True,
        provider=PROVIDER,
        provider_receipt_id=f"internal-{int(time.time() * 1000)}",
    )
