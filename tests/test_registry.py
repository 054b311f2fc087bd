"""Tests for the available-tool registry."""
import pytest

from toolgate.errors import DuplicateError, NotFoundError
from toolgate.services.preferences import PreferenceStore, Scope
from toolgate.services.registry import ToolRegistry
from tests.conftest import GMAIL_TOOLS, SLACK_TOOLS, USER_ID, seed_tools


@pytest.mark.asyncio
async def test_list_ordered_by_display_name(test_session):
    await seed_tools(test_session, "gmail", "Gmail", GMAIL_TOOLS)
    tools = await ToolRegistry(test_session).list()
    assert [t.display_name for t in tools] == ["Create Draft", "Read Emails", "Send Email"]


@pytest.mark.asyncio
async def test_add_duplicate_slug_rejected(test_session):
    registry = ToolRegistry(test_session)
    await registry.add("GMAIL_SEND_EMAIL", "gmail", "Gmail")
    with pytest.raises(DuplicateError):
        await registry.add("GMAIL_SEND_EMAIL", "gmail", "Gmail")


@pytest.mark.asyncio
async def test_get_unknown_tool(test_session):
    with pytest.raises(NotFoundError):
        await ToolRegistry(test_session).get("NOPE")


@pytest.mark.asyncio
async def test_update_only_touches_metadata(test_session):
    registry = ToolRegistry(test_session)
    await registry.add("GMAIL_SEND_EMAIL", "gmail", "Gmail", display_name="Send")
    tool = await registry.update(
        "GMAIL_SEND_EMAIL", display_name="Send Email", toolkit_name="Other"
    )
    assert tool.display_name == "Send Email"
    assert tool.toolkit_name == "Gmail"


@pytest.mark.asyncio
async def test_inactive_tools_hidden(test_session):
    await seed_tools(test_session, "gmail", "Gmail", GMAIL_TOOLS)
    registry = ToolRegistry(test_session)
    await registry.update("GMAIL_CREATE_DRAFT", is_active=False)

    assert len(await registry.list()) == 2
    assert len(await registry.list(include_inactive=True)) == 3
    assert await registry.tools_in_toolkit("Gmail") == ["GMAIL_READ_EMAILS", "GMAIL_SEND_EMAIL"]
    assert await registry.existing_slugs(["GMAIL_CREATE_DRAFT", "GMAIL_SEND_EMAIL"]) == {
        "GMAIL_SEND_EMAIL"
    }


@pytest.mark.asyncio
async def test_toolkits_group_by(test_session):
    await seed_tools(test_session, "slack", "Slack", SLACK_TOOLS)
    await seed_tools(test_session, "gmail", "Gmail", GMAIL_TOOLS)

    groups = await ToolRegistry(test_session).toolkits()
    assert [(g.toolkit_name, g.toolkit_slug, g.tool_count) for g in groups] == [
        ("Gmail", "gmail", 3),
        ("Slack", "slack", 2),
    ]
    # max() of the member descriptions
    assert groups[0].description == "Send Email via Gmail"


@pytest.mark.asyncio
async def test_tools_in_unknown_toolkit_is_empty(test_session):
    assert await ToolRegistry(test_session).tools_in_toolkit("Nope") == []


@pytest.mark.asyncio
async def test_delete_cascades_preferences(test_session):
    await seed_tools(test_session, "gmail", "Gmail", GMAIL_TOOLS)
    users = PreferenceStore(test_session, Scope.USER)
    agents = PreferenceStore(test_session, Scope.AGENT)
    await users.set(USER_ID, "GMAIL_SEND_EMAIL", True)
    await agents.set("agent-1", "GMAIL_SEND_EMAIL", True)
    await users.set(USER_ID, "GMAIL_READ_EMAILS", True)

    await ToolRegistry(test_session).delete("GMAIL_SEND_EMAIL")

    assert await users.enabled_slugs(USER_ID) == {"GMAIL_READ_EMAILS"}
    assert await agents.get("agent-1") == []
    assert await ToolRegistry(test_session).count() == 2


@pytest.mark.asyncio
async def test_delete_unknown_tool(test_session):
    with pytest.raises(NotFoundError):
        await ToolRegistry(test_session).delete("NOPE")
