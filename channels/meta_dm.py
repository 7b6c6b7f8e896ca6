"""Instagram direct messages through the Meta Graph API.

Messages are always posted to ``/me/messages``. The page access token already
scopes the call to its page; posting to ``/{page_id}/messages`` instead gets
messages rejected or sent from the wrong identity.
"""
import logging
from typing import Any, Dict

import requests

from channels.base import ChannelCredentials, DispatchResult
from config import DEFAULT_GRAPH_VERSION
from schemas.payloads import DmSendPayload

logger = logging.getLogger(__name__)

PROVIDER = "meta"
GRAPH_BASE = "https://graph.facebook.com"


def _error_text(resp: requests.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        data = None
    if isinstance(data, dict) and isinstance(data.get("error"), dict):
        message = data["error"].get("message")
        if message:
            return str(message)
    return resp.text or f"Graph send failed ({resp.status_code})"


def send_instagram_dm(
    payload: DmSendPayload,
    credentials: ChannelCredentials,
    timeout: float = 15,
    graph_version: str = DEFAULT_GRAPH_VERSION,
) -> DispatchResult:
    """Send one DM as the page that owns the access token.

    Args:
        payload: Validated dm_send payload (content + recipient_id).
        credentials: access_token is required; page_id is only logged.
        timeout: Seconds before the HTTP call is abandoned.

    Returns:
        DispatchResult with the Graph message_id as provider_receipt_id.
    """
    if not credentials.access_token:
        return DispatchResult.failure(
            PROVIDER, "Instagram not connected: missing page_access_token/page_id"
        )

    logger.info(
        "Sending IG DM to %s via /me/messages (page %s)",
        payload.recipient_id,
        credentials.page_id,
    )
    body: Dict[str, Any] = {
        "messaging_type": "RESPONSE",
        "recipient": {"id": payload.recipient_id},
        "message": {"text": payload.content},
    }
    try:
        resp = requests.post(
            f"{GRAPH_BASE}/{graph_version}/me/messages",
            params={"access_token": credentials.access_token},
            json=body,
            timeout=timeout,
        )
    except requests.exceptions.Timeout:
        return DispatchResult.failure(PROVIDER, f"Graph send timed out after {timeout}s")
    except requests.exceptions.RequestException as exc:
        return DispatchResult.failure(PROVIDER, str(exc))

    if not resp.ok:
        error = _error_text(resp)
        logger.warning("Instagram API error: status=%s error=%s", resp.status_code, error)
        return DispatchResult.failure(PROVIDER, error, status_code=resp.status_code)

    try:
        data = resp.json()
    except ValueError:
        data = {}
    if not isinstance(data, dict):
        data = {}
    receipt_id = str(data.get("message_id") or data.get("recipient_id") or "")
    logger.info("Instagram DM sent, receipt: %s", receipt_id)
    return DispatchResult(sent=True, provider=PROVIDER, provider_receipt_id=receipt_id)
