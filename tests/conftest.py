"""Shared fixtures: a throwaway SQLite database and a fully configured gateway."""
import uuid

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker

from config import GatewayConfig, OperatingMode
from db.connection import build_engine, session_scope
from db.models import Base
from db.repositories import actions as actions_repo
from db.repositories import conversations as conversations_repo


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'gateway.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def db_scope(engine):
    """Commit-or-rollback session scope bound to the test database."""
    return session_scope(async_sessionmaker(engine, expire_on_commit=False))


@pytest.fixture
def gateway_config():
    return GatewayConfig(
        mode=OperatingMode.LIVE,
        resend_api_key="re_test_key",
        instagram_page_access_token="ig-page-token",
        instagram_page_id="17841400000000000",
        functions_base_url="https://functions.test/v1",
        functions_service_token="service-token",
        dispatch_timeout_seconds=5,
    )


@pytest.fixture
def make_conversation(db_scope):
    async def _make(channel="email", **flags):
        async with db_scope() as session:
            conversation = await conversations_repo.create(
                session, channel, organization_id=uuid.uuid4(), **flags
            )
        return conversation

    return _make


@pytest.fixture
def make_action(db_scope):
    async def _make(channel, action_type, payload, *, conversation=None, status="pending"):
        async with db_scope() as session:
            action = await actions_repo.create_action(
                session,
                channel,
                action_type,
                payload,
                conversation_id=conversation.id if conversation else None,
                organization_id=conversation.organization_id if conversation else None,
                status=status,
            )
        return action

    return _make
