"""Transactional email through the Resend REST API (no official SDK used)."""
import logging
from typing import Any, Dict

import requests

from channels.base import ChannelCredentials, DispatchResult
from config import DEFAULT_EMAIL_SUBJECT, DEFAULT_FROM_EMAIL
from schemas.payloads import EmailSendPayload

logger = logging.getLogger(__name__)

PROVIDER = "resend"
RESEND_EMAILS_URL = "https://api.resend.com/emails"


def resolve_envelope(
    payload: EmailSendPayload,
    default_from: str = DEFAULT_FROM_EMAIL,
    default_subject: str = DEFAULT_EMAIL_SUBJECT,
) -> Dict[str, str]:
    """Return the from/to/subject actually used for this payload."""
    return {
        "from": payload.from_ or default_from,
        "to": payload.to,
        "subject": payload.subject or default_subject,
    }


def send_email(
    payload: EmailSendPayload,
    credentials: ChannelCredentials,
    timeout: float = 15,
    default_from: str = DEFAULT_FROM_EMAIL,
    default_subject: str = DEFAULT_EMAIL_SUBJECT,
) -> DispatchResult:
    """Send a plain-text email.

    A rejection keeps Resend's own ``message`` text unchanged in the error so
    operators see exactly what the provider said.
    """
    if not credentials.api_key:
        return DispatchResult.failure(PROVIDER, "Missing RESEND_API_KEY")

    envelope = resolve_envelope(payload, default_from, default_subject)
    logger.info("Sending email to %s from %s", envelope["to"], envelope["from"])
    body: Dict[str, Any] = {
        "from": envelope["from"],
        "to": [envelope["to"]],
        "subject": envelope["subject"],
        "text": payload.content,
    }
    try:
        resp = requests.post(
            RESEND_EMAILS_URL,
            headers={
                "Authorization": f"Bearer {credentials.api_key}",
                "Content-Type": "application/json",
            },
            json=body,
            timeout=timeout,
        )
    except requests.exceptions.Timeout:
        return DispatchResult.failure(PROVIDER, f"Resend timed out after {timeout}s")
    except requests.exceptions.RequestException as exc:
        return DispatchResult.failure(PROVIDER, str(exc))

    try:
        data = resp.json()
    except ValueError:
        data = {}
    if not isinstance(data, dict):
        data = {}

    if not resp.ok:
        error = str(data.get("message") or resp.text or f"Resend failed ({resp.status_code})")
        logger.warning("Resend API error: status=%s error=%s", resp.status_code, error)
        return DispatchResult.failure(PROVIDER, error, status_code=resp.status_code)

    receipt_id = str(data.get("id") or "")
    logger.info("Email sent, receipt: %s", receipt_id)
    return DispatchResult(
        sent=True, provider=PROVIDER, provider_receipt_id=receipt_id, detail=envelope
    )
