"""AI Action Execution Gateway: operator entry point.

Usage:
  # Execute one ai_action (same contract as POST /execute-ai-action)
  python main.py execute --action-id 3f1c...

  # Parse / run a CREATE_CONTENT block
  python main.py create-content --file block.txt --mode preview
  python main.py create-content --text "content_type: reel" --mode execute \
      --conversation-id 9a2b...

  # Explicit re-attempt of a failed action (failed → approved), then execute
  python main.py retry --action-id 3f1c... --execute

  # Audit / watchdog queries
  python main.py receipts --conversation-id 9a2b... --since 2026-10-01T00:00:00Z
  python main.py stuck --older-than-minutes 30

  # Serve the HTTP API
  python main.py serve --port 8000
"""
import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from uuid import UUID

from dateutil import parser as date_parser

import db.repositories.actions as actions_repo
import db.repositories.receipts as receipts_repo
from config import GatewayConfig
from db.connection import dispose_engine, get_db
from gateway import ContentRenderService, Gateway, GatewayError
from schemas.requests import CreateContentRequest

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s %(message)s")
logger = logging.getLogger(__name__)


def _print(body: dict) -> None:
    print(json.dumps(body, indent=2, default=str))


async def run_execute(action_id: str) -> int:
    gateway = Gateway(GatewayConfig.from_env())
    try:
        result = await gateway.execute_action(action_id)
    except GatewayError as exc:
        _print(exc.to_body())
        return 1
    finally:
        await dispose_engine()
    _print(result.body)
    return 0 if result.status_code < 400 else 1


async def run_create_content(text: str, mode: str, conversation_id, organization_id, agent, requested_by) -> int:
    service = ContentRenderService(GatewayConfig.from_env())
    request = CreateContentRequest(
        create_content_text=text,
        mode=mode,
        conversation_id=conversation_id,
        organization_id=organization_id,
        agent=agent,
        requested_by=requested_by,
    )
    try:
        result = await service.create_content(request)
    except GatewayError as exc:
        _print({"ok": False, **exc.to_body()})
        return 1
    finally:
        await dispose_engine()
    _print(result.body)
    return 0 if result.status_code < 400 else 1


async def run_retry(action_id: UUID, approved_by: str, execute: bool) -> int:
    try:
        async with get_db() as session:
            requeued = await actions_repo.requeue_failed(session, action_id, approved_by)
    finally:
        await dispose_engine()
    if not requeued:
        print(f"Action {action_id} is not in failed status, nothing to retry")
        return 1
    print(f"Action {action_id} requeued as approved")
    if execute:
        return await run_execute(str(action_id))
    return 0


async def run_receipts(conversation_id, organization_id, since, limit: int) -> int:
    try:
        async with get_db() as session:
            receipts = await receipts_repo.list_recent(
                session,
                conversation_id=conversation_id,
                organization_id=organization_id,
                since=since,
                limit=limit,
            )
            rows = [
                {
                    "id": r.id,
                    "created_at": r.created_at,
                    "source": f"{r.source_table}/{r.source_id}",
                    "channel": r.channel,
                    "action_type": r.action_type,
                    "status": r.status,
                    "provider": r.provider,
                    "provider_receipt_id": r.provider_receipt_id,
                    "error": r.error,
                }
                for r in receipts
            ]
    finally:
        await dispose_engine()
    _print({"count": len(rows), "receipts": rows})
    return 0


async def run_stuck(older_than_minutes: int) -> int:
    try:
        async with get_db() as session:
            stuck = await actions_repo.list_stuck(session, older_than_minutes)
            rows = [
                {"id": a.id, "action_type": a.action_type, "executed_at": a.executed_at}
                for a in stuck
            ]
    finally:
        await dispose_engine()
    _print({"count": len(rows), "stuck": rows})
    return 1 if rows else 0


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="AI Action Execution Gateway")
    sub = parser.add_subparsers(dest="command")

    execute = sub.add_parser("execute", help="Execute one ai_action by id")
    execute.add_argument("--action-id", required=True)

    content = sub.add_parser("create-content", help="Preview or execute a CREATE_CONTENT block")
    source = content.add_mutually_exclusive_group(required=True)
    source.add_argument("--file", type=Path, help="File containing the block")
    source.add_argument("--text", help="Block text")
    content.add_argument("--mode", choices=["preview", "execute"], default="preview")
    content.add_argument("--conversation-id", type=UUID, default=None)
    content.add_argument("--organization-id", type=UUID, default=None)
    content.add_argument("--agent", default="noah_bennett")
    content.add_argument("--requested-by", default="cli")

    retry = sub.add_parser("retry", help="Requeue a failed action for another attempt")
    retry.add_argument("--action-id", type=UUID, required=True)
    retry.add_argument("--approved-by", default="cli")
    retry.add_argument("--execute", action="store_true", default=False, help="Execute right after requeueing")

    receipts = sub.add_parser("receipts", help="List recent execution receipts")
    receipts.add_argument("--conversation-id", type=UUID, default=None)
    receipts.add_argument("--organization-id", type=UUID, default=None)
    receipts.add_argument("--since", default=None, help="ISO 8601 timestamp (e.g. 2026-10-01T00:00:00Z)")
    receipts.add_argument("--limit", type=int, default=50)

    stuck = sub.add_parser("stuck", help="List actions left in 'executing' (crashed dispatches)")
    stuck.add_argument("--older-than-minutes", type=int, default=15)

    serve = sub.add_parser("serve", help="Serve the HTTP API with uvicorn")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8000)

    return parser


if __name__ == "__main__":
    parser = _build_arg_parser()
    args = parser.parse_args()

    if args.command == "execute":
        sys.exit(asyncio.run(run_execute(args.action_id)))

    elif args.command == "create-content":
        text = args.file.read_text() if args.file else args.text
        sys.exit(asyncio.run(run_create_content(
            text,
            args.mode,
            args.conversation_id,
            args.organization_id,
            args.agent,
            args.requested_by,
        )))

    elif args.command == "retry":
        sys.exit(asyncio.run(run_retry(args.action_id, args.approved_by, args.execute)))

    elif args.command == "receipts":
        since = date_parser.isoparse(args.since) if args.since else None
        sys.exit(asyncio.run(run_receipts(
            args.conversation_id, args.organization_id, since, args.limit
        )))

    elif args.command == "stuck":
        sys.exit(asyncio.run(run_stuck(args.older_than_minutes)))

    elif args.command == "serve":
        import uvicorn

        uvicorn.run("api:create_app", factory=True, host=args.host, port=args.port)

    else:
        parser.print_help()
        sys.exit(1)
