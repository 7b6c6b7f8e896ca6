"""Internal content-rendering pipelines.

Rendering is delegated to internal functions reachable over HTTP. They are
tried in order (primary, then fallback); the first one that answers with a 2xx
wins and its name is recorded as ``usedFn``.
"""
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
from uuid import UUID

import requests

from channels.base import ChannelCredentials, DispatchResult
from schemas.payloads import ContentRenderPayload

logger = logging.getLogger(__name__)

PROVIDER = "internal"
PRIMARY_PIPELINE = "execute-delegated-task"
FALLBACK_PIPELINE = "hybrid-generate-content"
RENDER_PIPELINES = (PRIMARY_PIPELINE, FALLBACK_PIPELINE)


class PipelineError(RuntimeError):
    """A rendering pipeline could not be reached or answered with an error."""


class AllStrategiesFailed(RuntimeError):
    def __init__(self, errors: List[Tuple[str, str]]):
        self.errors = errors
        last = errors[-1][1] if errors else "no strategies configured"
        super().__init__(last)


def first_success(
    strategies: Sequence[Tuple[str, Callable[[], Dict[str, Any]]]],
) -> Tuple[str, Dict[str, Any]]:
    """Run strategies in order; return (name, result) of the first that succeeds.

    Raises AllStrategiesFailed carrying every (name, error) pair; its message
    is the last error.
    """
    errors: List[Tuple[str, str]] = []
    for name, strategy in strategies:
        try:
            return name, strategy()
        except Exception as exc:
            logger.warning("Strategy %s failed, trying next: %s", name, exc)
            errors.append((name, str(exc)))
    raise AllStrategiesFailed(errors)


def call_pipeline(
    name: str,
    body: Dict[str, Any],
    credentials: ChannelCredentials,
    timeout: float = 15,
) -> Dict[str, Any]:
    """POST to one internal function and return its JSON body."""
    if not credentials.base_url:
        raise PipelineError("FUNCTIONS_BASE_URL is not configured")

    logger.info("Calling %s...", name)
    headers = {"Content-Type": "application/json"}
    if credentials.access_token:
        headers["Authorization"] = f"Bearer {credentials.access_token}"
    try:
        resp = requests.post(
            f"{credentials.base_url.rstrip('/')}/{name}",
            headers=headers,
            json=body,
            timeout=timeout,
        )
    except requests.exceptions.RequestException as exc:
        raise PipelineError(f"{name} unreachable: {exc}") from exc

    try:
        data = resp.json()
    except ValueError:
        data = {"raw": resp.text}
    if not isinstance(data, dict):
        data = {"raw": data}
    if not resp.ok:
        raise PipelineError(str(data.get("error") or f"{name} failed ({resp.status_code})"))
    return data


def render_body(
    job_id: Optional[UUID],
    parsed: Dict[str, Any],
    conversation_id: Optional[UUID] = None,
    organization_id: Optional[UUID] = None,
) -> Dict[str, Any]:
    return {
        "job_id": str(job_id) if job_id else None,
        "platform": str(parsed.get("platform") or "instagram"),
        "content_type": str(parsed.get("content_type") or "reel"),
        "create_content": parsed,
        "conversation_id": str(conversation_id) if conversation_id else None,
        "organization_id": str(organization_id) if organization_id else None,
    }


def render_content(
    payload: ContentRenderPayload,
    credentials: ChannelCredentials,
    timeout: float = 15,
    conversation_id: Optional[UUID] = None,
    organization_id: Optional[UUID] = None,
    pipelines: Sequence[str] = RENDER_PIPELINES,
) -> DispatchResult:
    """Render through the pipeline chain.

    On success ``detail`` holds ``usedFn`` and ``execResult``; on failure it
    holds every attempted pipeline's error.
    """
    body = render_body(payload.job_id, payload.parsed, conversation_id, organization_id)
    strategies = [
        (name, lambda name=name: call_pipeline(name, body, credentials, timeout))
        for name in pipelines
    ]
    try:
        used_fn, exec_result = first_success(strategies)
    except AllStrategiesFailed as exc:
        logger.error("All render pipelines failed: %s", exc.errors)
        return DispatchResult.failure(
            PROVIDER, str(exc), attempts=[{"fn": n, "error": e} for n, e in exc.errors]
        )
    return DispatchResult(
        sent=True,
        provider=PROVIDER,
        detail={"usedFn": used_fn, "execResult": exec_result},
    )
