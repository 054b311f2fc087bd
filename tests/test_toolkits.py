"""Tests for toolkit aggregation and bulk toolkit writes."""
import pytest

from toolgate.services.preferences import PreferenceStore, Scope
from toolgate.services.registry import ToolRegistry
from toolgate.services.toolkits import ToolkitAggregator, ToolkitBulkError, toolkit_enabled
from tests.conftest import GMAIL_TOOLS, SLACK_TOOLS, USER_ID, seed_tools


def test_toolkit_enabled_requires_every_tool():
    assert toolkit_enabled(["A", "B"], {"A", "B", "C"}) is True
    assert toolkit_enabled(["A", "B"], {"A"}) is False


def test_toolkit_without_tools_is_never_enabled():
    assert toolkit_enabled([], {"A"}) is False
    assert toolkit_enabled([], set()) is False


async def _statuses(session, scope=Scope.USER, scope_id=USER_ID):
    return {
        s.toolkit_name: s
        for s in await ToolkitAggregator(session).list_with_status(scope, scope_id)
    }


@pytest.mark.asyncio
async def test_gmail_end_to_end(test_session):
    await seed_tools(test_session, "gmail", "Gmail", GMAIL_TOOLS)
    aggregator = ToolkitAggregator(test_session)
    store = PreferenceStore(test_session, Scope.USER)

    affected = await aggregator.set_toolkit_enabled(Scope.USER, USER_ID, "Gmail", True)
    assert affected == 3
    assert (await _statuses(test_session))["Gmail"].is_enabled is True

    await store.set(USER_ID, "GMAIL_CREATE_DRAFT", False)
    statuses = await _statuses(test_session)
    assert statuses["Gmail"].is_enabled is False
    assert statuses["Gmail"].tool_count == 3
    # The other two stay enabled individually
    assert await store.enabled_slugs(USER_ID) == {"GMAIL_SEND_EMAIL", "GMAIL_READ_EMAILS"}


@pytest.mark.asyncio
async def test_unknown_toolkit_writes_nothing(test_session):
    await seed_tools(test_session, "gmail", "Gmail", GMAIL_TOOLS)
    affected = await ToolkitAggregator(test_session).set_toolkit_enabled(
        Scope.USER, USER_ID, "Nope", True
    )
    assert affected == 0
    assert await PreferenceStore(test_session, Scope.USER).get(USER_ID) == []


@pytest.mark.asyncio
async def test_inactive_tool_does_not_block_toolkit(test_session):
    await seed_tools(test_session, "gmail", "Gmail", GMAIL_TOOLS)
    await ToolRegistry(test_session).update("GMAIL_CREATE_DRAFT", is_active=False)

    aggregator = ToolkitAggregator(test_session)
    assert await aggregator.set_toolkit_enabled(Scope.USER, USER_ID, "Gmail", True) == 2
    statuses = await _statuses(test_session)
    assert statuses["Gmail"].tool_count == 2
    assert statuses["Gmail"].is_enabled is True


@pytest.mark.asyncio
async def test_toolkit_whose_tools_are_all_inactive_disappears(test_session):
    await seed_tools(test_session, "slack", "Slack", SLACK_TOOLS)
    registry = ToolRegistry(test_session)
    for slug, _ in SLACK_TOOLS:
        await registry.update(slug, is_active=False)
    assert await _statuses(test_session) == {}


@pytest.mark.asyncio
async def test_bulk_set_all(test_session):
    await seed_tools(test_session, "gmail", "Gmail", GMAIL_TOOLS)
    await seed_tools(test_session, "slack", "Slack", SLACK_TOOLS)
    aggregator = ToolkitAggregator(test_session)

    result = await aggregator.bulk_set_all(Scope.USER, USER_ID, True)
    assert result.total_tools_affected == 5
    assert [(w.toolkit_name, w.tools_affected) for w in result.per_toolkit] == [
        ("Gmail", 3),
        ("Slack", 2),
    ]
    assert await aggregator.enabled_toolkit_names(Scope.USER, USER_ID) == ["Gmail", "Slack"]

    result = await aggregator.bulk_set_all(Scope.USER, USER_ID, False)
    assert result.total_tools_affected == 5
    assert await aggregator.enabled_toolkit_names(Scope.USER, USER_ID) == []


@pytest.mark.asyncio
async def test_bulk_failure_reports_committed_toolkits(test_session, session_factory, monkeypatch):
    await seed_tools(test_session, "gmail", "Gmail", GMAIL_TOOLS)
    await seed_tools(test_session, "slack", "Slack", SLACK_TOOLS)
    await test_session.commit()

    original = ToolkitAggregator.set_toolkit_enabled

    async def flaky(self, scope, scope_id, toolkit_name, enabled):
        if toolkit_name == "Slack":
            raise RuntimeError("connection reset")
        return await original(self, scope, scope_id, toolkit_name, enabled)

    monkeypatch.setattr(ToolkitAggregator, "set_toolkit_enabled", flaky)

    with pytest.raises(ToolkitBulkError) as exc_info:
        await ToolkitAggregator(test_session).bulk_set_all(Scope.USER, USER_ID, True)

    error = exc_info.value
    assert error.failed_toolkit == "Slack"
    assert error.completed.total_tools_affected == 3
    assert error.to_dict()["completed"]["per_toolkit"] == [
        {"toolkit_name": "Gmail", "tools_affected": 3}
    ]

    # Gmail was committed before the failure
    async with session_factory() as fresh:
        enabled = await PreferenceStore(fresh, Scope.USER).enabled_slugs(USER_ID)
    assert enabled == {slug for slug, _ in GMAIL_TOOLS}


@pytest.mark.asyncio
async def test_copy_selection_is_additive(test_session):
    await seed_tools(test_session, "gmail", "Gmail", GMAIL_TOOLS)
    await seed_tools(test_session, "slack", "Slack", SLACK_TOOLS)
    aggregator = ToolkitAggregator(test_session)

    await aggregator.set_toolkit_enabled(Scope.AGENT, "agent-1", "Slack", True)
    result = await aggregator.copy_selection("agent-1", ["Gmail", "", None, "Gmail"])

    assert [(w.toolkit_name, w.tools_affected) for w in result.per_toolkit] == [("Gmail", 3)]
    assert await aggregator.enabled_toolkit_names(Scope.AGENT, "agent-1") == ["Gmail", "Slack"]
    # The owner's user scope is untouched
    assert await aggregator.enabled_toolkit_names(Scope.USER, USER_ID) == []
