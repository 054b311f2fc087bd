"""Pytest configuration and fixtures for toolgate tests."""
import os
import sys

# Add project root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Set test environment before importing the app
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["AUTH_ENABLED"] = "true"
os.environ["AUTH_SECRET_KEY"] = "test-secret-key-with-at-least-32-bytes!"
os.environ["AUTH_ISSUER"] = ""
os.environ["ENGINE_INTERNAL_TOKEN"] = "test-engine-token"
os.environ["AUTO_MIGRATE"] = "false"
os.environ["AUTO_CONNECT_TOOLKITS"] = "apify"
os.environ["SUPPORTED_TOOLKITS"] = "GMAIL,TWITTER,MAILCHIMP"

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from toolgate.main import app
from toolgate import dependencies
from toolgate.auth.dependencies import AuthUser, get_current_user
from toolgate.database import get_async_session
from toolgate.dependencies import get_provider
from toolgate.models import Base
from tests.fakes import FakeProvider

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

USER_ID = "user_alice"
OTHER_USER_ID = "user_bob"

GMAIL_TOOLS = [
    ("GMAIL_SEND_EMAIL", "Send Email"),
    ("GMAIL_READ_EMAILS", "Read Emails"),
    ("GMAIL_CREATE_DRAFT", "Create Draft"),
]
SLACK_TOOLS = [
    ("SLACK_SEND_MESSAGE", "Send Message"),
    ("SLACK_CREATE_CHANNEL", "Create Channel"),
]


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def test_session(session_factory):
    """Create test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def provider():
    return FakeProvider()


class Caller:
    """Mutable holder for the identity the test client authenticates as."""

    def __init__(self, user: AuthUser):
        self.user = user

    def act_as(self, user_id: str, is_admin: bool = False) -> None:
        self.user = AuthUser(id=user_id, is_admin=is_admin)


@pytest.fixture
def caller():
    return Caller(AuthUser(id=USER_ID))


@pytest_asyncio.fixture(scope="function")
async def client(session_factory, provider, caller):
    """Create test client with overridden database, identity and provider."""

    async def override_get_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_async_session] = override_get_session
    app.dependency_overrides[get_current_user] = lambda: caller.user
    app.dependency_overrides[get_provider] = lambda: provider

    # No Redis in tests; broadcasts are skipped
    dependencies.redis_client = None

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client

    app.dependency_overrides.clear()


async def seed_tools(session, toolkit_slug: str, toolkit_name: str, tools, description=None):
    """Register ``tools`` ([(slug, display_name)]) under one toolkit."""
    from toolgate.services.registry import ToolRegistry

    registry = ToolRegistry(session)
    for slug, display_name in tools:
        await registry.add(
            slug=slug,
            toolkit_slug=toolkit_slug,
            toolkit_name=toolkit_name,
            display_name=display_name,
            description=description or f"{display_name} via {toolkit_name}",
        )


@pytest_asyncio.fixture
async def seeded(session_factory):
    """Registry with Gmail (3 tools) and Slack (2 tools)."""
    async with session_factory() as session:
        await seed_tools(session, "gmail", "Gmail", GMAIL_TOOLS)
        await seed_tools(session, "slack", "Slack", SLACK_TOOLS)
        await session.commit()


async def create_agent(session_factory, user_id=USER_ID, is_global=False, name="Helper"):
    from toolgate.services.agents import AgentService

    async with session_factory() as session:
        agent = await AgentService(session).create(
            user_id=user_id, name=name, is_global=is_global
        )
        await session.commit()
        return agent.id
