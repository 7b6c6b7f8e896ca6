"""Credential resolution and bounded dispatcher calls."""
import asyncio
import functools
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

import db.repositories.credentials as credentials_repo
from channels import (
    RENDER_PIPELINES,
    ChannelCredentials,
    DispatchResult,
    record_website_reply,
    render_content,
    send_email,
    send_instagram_dm,
)
from channels import meta_dm, render_pipelines, resend_email, website
from config import GatewayConfig
from gateway.errors import PayloadValidationError
from schemas.payloads import (
    ActionPayload,
    ContentRenderPayload,
    DmSendPayload,
    EmailSendPayload,
    WebsiteReplyPayload,
)

logger = logging.getLogger(__name__)

# Share of the dispatch budget given to each provider call, so requests gives up
# on its own before the budget expires and the call cannot complete unobserved.
PROVIDER_TIMEOUT_SHARE = 0.8

PROVIDER_FOR_ACTION_TYPE = {
    "dm_send": meta_dm.PROVIDER,
    "email_send": resend_email.PROVIDER,
    "website_reply": website.PROVIDER,
    "content_render": render_pipelines.PROVIDER,
}


def provider_timeout(budget: float) -> float:
    return budget * PROVIDER_TIMEOUT_SHARE


def render_credentials(config: GatewayConfig) -> ChannelCredentials:
    return ChannelCredentials(
        base_url=config.functions_base_url,
        access_token=config.functions_service_token,
    )


async def resolve_credentials(
    session: AsyncSession, config: GatewayConfig, payload: ActionPayload
) -> ChannelCredentials:
    """Look up what the payload's channel needs; missing pieces are a validation failure."""
    if isinstance(payload, DmSendPayload):
        stored = await credentials_repo.get_latest(session, "meta")
        token = (stored.page_access_token if stored else None) or config.instagram_page_access_token
        page_id = (stored.page_id if stored else None) or config.instagram_page_id
        if not token or not page_id:
            raise PayloadValidationError(
                "Instagram not connected: missing page_access_token/page_id",
                code="credentials_missing",
            )
        return ChannelCredentials(access_token=token, page_id=page_id)

    if isinstance(payload, EmailSendPayload):
        if not config.resend_api_key:
            raise PayloadValidationError("Missing RESEND_API_KEY", code="credentials_missing")
        return ChannelCredentials(api_key=config.resend_api_key)

    if isinstance(payload, ContentRenderPayload):
        if not config.functions_base_url:
            raise PayloadValidationError(
                "FUNCTIONS_BASE_URL is not configured", code="credentials_missing"
            )
        return render_credentials(config)

    return ChannelCredentials()


def build_dispatch(
    payload: ActionPayload,
    credentials: ChannelCredentials,
    config: GatewayConfig,
    timeout: float,
    *,
    conversation_id=None,
    organization_id=None,
):
    """Bind the payload's dispatcher to its arguments; returns (call, time budget).

    ``timeout`` is the budget for one provider call; the dispatcher itself gets
    the smaller ``provider_timeout(timeout)``.
    """
    budget = timeout
    timeout = provider_timeout(budget)
    if isinstance(payload, DmSendPayload):
        call = functools.partial(
            send_instagram_dm, payload, credentials, timeout, graph_version=config.graph_version
        )
        return call, budget
    if isinstance(payload, EmailSendPayload):
        call = functools.partial(
            send_email,
            payload,
            credentials,
            timeout,
            default_from=config.default_from_email,
            default_subject=config.default_email_subject,
        )
        return call, budget
    if isinstance(payload, WebsiteReplyPayload):
        return functools.partial(record_website_reply, payload, credentials, timeout), budget
    if isinstance(payload, ContentRenderPayload):
        call = functools.partial(
            render_content,
            payload,
            credentials,
            timeout,
            conversation_id=conversation_id,
            organization_id=organization_id,
        )
        # one provider call per pipeline in the chain
        return call, budget * len(RENDER_PIPELINES)
    raise PayloadValidationError(f"No dispatcher for {type(payload).__name__}")


async def dispatch_with_timeout(
    call, budget: float, provider: Optional[str] = None
) -> DispatchResult:
    """Run a blocking dispatcher off the event loop, bounded by ``budget`` seconds.

    Never raises: a timeout or unexpected exception becomes a failed result.
    The worker thread is not cancelled on timeout. Dispatchers get a requests
    timeout below the budget, but that bounds each socket operation, not the
    whole call, so a provider can still accept a message after the action was
    recorded as failed.
    """
    try:
        return await asyncio.wait_for(asyncio.to_thread(call), timeout=budget)
    except asyncio.TimeoutError:
        logger.warning("Dispatch timed out after %ss", budget)
        return DispatchResult.failure(provider, f"Dispatch timed out after {budget:g}s")
    except Exception as exc:
        logger.exception("Dispatcher raised unexpectedly")
        return DispatchResult.failure(provider, f"{type(exc).__name__}: {exc}")
