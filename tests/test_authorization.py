"""Tests for the two-layer authorization facade."""
import pytest

from toolgate.config import Settings
from toolgate.errors import ForbiddenError, NotFoundError
from toolgate.services.agents import AgentService
from toolgate.services.authorization import AuthorizationFacade
from toolgate.services.connections import ConnectionEngine
from toolgate.services.preferences import PreferenceStore, Scope
from toolgate.services.registry import ToolRegistry
from toolgate.services.toolkits import ToolkitAggregator
from tests.conftest import GMAIL_TOOLS, OTHER_USER_ID, SLACK_TOOLS, USER_ID, seed_tools
from tests.fakes import FakeProvider


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def facade(test_session, provider):
    return AuthorizationFacade(test_session, ConnectionEngine(provider, Settings()))


@pytest.mark.asyncio
async def test_unknown_tool_is_not_found(facade):
    with pytest.raises(NotFoundError):
        await facade.check(USER_ID, "NOPE")


@pytest.mark.asyncio
async def test_enabled_but_not_connected(test_session, facade):
    await seed_tools(test_session, "gmail", "Gmail", GMAIL_TOOLS)
    await PreferenceStore(test_session, Scope.USER).set(USER_ID, "GMAIL_SEND_EMAIL", True)

    status = await facade.check(USER_ID, "GMAIL_SEND_EMAIL")
    assert status.enabled is True
    assert status.connected is False
    assert status.callable is False
    assert status.reason() == "disconnected"


@pytest.mark.asyncio
async def test_connected_but_not_enabled(test_session, facade, provider):
    await seed_tools(test_session, "gmail", "Gmail", GMAIL_TOOLS)
    provider.add_account("ca_1", USER_ID, "gmail")

    status = await facade.check(USER_ID, "GMAIL_SEND_EMAIL")
    assert status.connected is True
    assert status.callable is False
    assert status.reason() == "disabled"


@pytest.mark.asyncio
async def test_initiated_connection_does_not_count(test_session, facade, provider):
    await seed_tools(test_session, "gmail", "Gmail", GMAIL_TOOLS)
    await PreferenceStore(test_session, Scope.USER).set(USER_ID, "GMAIL_SEND_EMAIL", True)
    provider.add_account("ca_1", USER_ID, "gmail", status="INITIATED")

    assert await facade.is_callable(USER_ID, "GMAIL_SEND_EMAIL") is False

    provider.set_status("ca_1", "ACTIVE")
    assert await facade.is_callable(USER_ID, "GMAIL_SEND_EMAIL") is True


@pytest.mark.asyncio
async def test_inactive_tool_never_callable(test_session, facade, provider):
    await seed_tools(test_session, "gmail", "Gmail", GMAIL_TOOLS)
    await PreferenceStore(test_session, Scope.USER).set(USER_ID, "GMAIL_SEND_EMAIL", True)
    provider.add_account("ca_1", USER_ID, "gmail")
    await ToolRegistry(test_session).update("GMAIL_SEND_EMAIL", is_active=False)

    status = await facade.check(USER_ID, "GMAIL_SEND_EMAIL")
    assert status.callable is False
    assert status.reason() == "inactive"


@pytest.mark.asyncio
async def test_agent_scope_ignores_user_preferences(test_session, facade, provider):
    await seed_tools(test_session, "gmail", "Gmail", GMAIL_TOOLS)
    provider.add_account("ca_1", USER_ID, "gmail")
    agent = await AgentService(test_session).create(USER_ID, "Mailer")

    await PreferenceStore(test_session, Scope.USER).set(USER_ID, "GMAIL_SEND_EMAIL", True)
    assert await facade.is_callable(USER_ID, "GMAIL_SEND_EMAIL") is True
    assert await facade.is_callable(USER_ID, "GMAIL_SEND_EMAIL", agent.id) is False

    await PreferenceStore(test_session, Scope.AGENT).set(agent.id, "GMAIL_SEND_EMAIL", True)
    status = await facade.check(USER_ID, "GMAIL_SEND_EMAIL", agent.id)
    assert status.scope == "agent"
    assert status.callable is True


@pytest.mark.asyncio
async def test_private_agent_of_other_user(test_session, facade):
    await seed_tools(test_session, "gmail", "Gmail", GMAIL_TOOLS)
    agent = await AgentService(test_session).create(OTHER_USER_ID, "Private")
    with pytest.raises(ForbiddenError):
        await facade.check(USER_ID, "GMAIL_SEND_EMAIL", agent.id)


@pytest.mark.asyncio
async def test_callable_tools(test_session, facade, provider):
    await seed_tools(test_session, "gmail", "Gmail", GMAIL_TOOLS)
    await seed_tools(test_session, "slack", "Slack", SLACK_TOOLS)
    aggregator = ToolkitAggregator(test_session)
    await aggregator.set_toolkit_enabled(Scope.USER, USER_ID, "Gmail", True)
    await aggregator.set_toolkit_enabled(Scope.USER, USER_ID, "Slack", True)
    provider.add_account("ca_1", USER_ID, "GMAIL")

    tools = await facade.callable_tools(USER_ID)
    assert sorted(t.slug for t in tools) == sorted(slug for slug, _ in GMAIL_TOOLS)

    # Connections belong to the user, not the agent; the agent has nothing enabled
    agent = await AgentService(test_session).create(USER_ID, "Empty")
    assert await facade.callable_tools(USER_ID, agent.id) == []
