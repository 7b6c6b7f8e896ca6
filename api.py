"""HTTP surface for the gateway.

POST /execute-ai-action       {action_id}
POST /execute-create-content  {conversation_id?, organization_id?, requested_by,
                               agent, create_content_text, mode}

Run with:
    uvicorn api:create_app --factory
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from config import GatewayConfig
from db.connection import dispose_engine
from gateway import ContentRenderService, Gateway, GatewayError, GatewayResponse
from schemas.requests import CreateContentRequest, ExecuteActionRequest

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await dispose_engine()


def _respond(result: GatewayResponse) -> JSONResponse:
    return JSONResponse(result.body, status_code=result.status_code)


def create_app(
    gateway: Optional[Gateway] = None,
    content_service: Optional[ContentRenderService] = None,
) -> FastAPI:
    """Build the app; services default to ones configured from the environment."""
    if gateway is None or content_service is None:
        config = GatewayConfig.from_env()
        gateway = gateway or Gateway(config)
        content_service = content_service or ContentRenderService(config)

    app = FastAPI(title="AI Action Execution Gateway", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["POST", "OPTIONS"],
        allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
    )

    @app.post("/execute-ai-action")
    async def execute_ai_action(request: Request) -> JSONResponse:
        try:
            body = await request.json()
        except ValueError:
            body = {}
        try:
            payload = ExecuteActionRequest.model_validate(body if isinstance(body, dict) else {})
        except ValidationError:
            return JSONResponse({"error": "action_id must be a string"}, status_code=400)

        try:
            result = await gateway.execute_action(payload.action_id)
        except GatewayError as exc:
            logger.exception("Gateway error for action %s", payload.action_id)
            return JSONResponse(exc.to_body(), status_code=exc.status_code)
        except Exception as exc:
            logger.exception("Unexpected error for action %s", payload.action_id)
            return JSONResponse({"error": str(exc)}, status_code=500)
        return _respond(result)

    @app.post("/execute-create-content")
    async def execute_create_content(body: CreateContentRequest) -> JSONResponse:
        try:
            result = await content_service.create_content(body)
        except GatewayError as exc:
            logger.exception("Gateway error for create-content request")
            return JSONResponse({"ok": False, **exc.to_body()}, status_code=exc.status_code)
        except Exception as exc:
            logger.exception("Unexpected error for create-content request")
            return JSONResponse({"ok": False, "error": str(exc)}, status_code=500)
        return _respond(result)

    return app
