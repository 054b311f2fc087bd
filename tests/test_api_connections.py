"""API tests for connection endpoints and the callable-tool views."""
import pytest

from toolgate.main import app
from toolgate.dependencies import get_provider
from tests.conftest import OTHER_USER_ID, USER_ID, create_agent


@pytest.fixture
def provider(provider):
    provider.add_auth_config("ac_gmail", "gmail", "OAUTH2")
    provider.add_auth_config("ac_mailchimp", "mailchimp", "API_KEY")
    provider.add_auth_config("ac_campaign", "active_campaign", "API_KEY")
    provider.add_auth_config("ac_apify", "apify", "API_KEY")
    provider.add_toolkit("gmail", "Gmail")
    provider.add_toolkit("twitter", "Twitter")
    provider.add_toolkit("mailchimp", "Mailchimp")
    return provider


@pytest.mark.asyncio
async def test_redirect_initiate(client, provider):
    response = await client.post("/v1/connections/initiate", json={"auth_config_id": "ac_gmail"})
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "INITIATED"
    assert body["redirect_url"]

    status = await client.get(f"/v1/connections/status?connection_id={body['connection_id']}")
    assert status.json()["status"] == "INITIATED"


@pytest.mark.asyncio
async def test_api_key_connect_then_existing(client, provider):
    payload = {"auth_config_id": "ac_mailchimp", "api_key": "mc-1"}
    first = (await client.post("/v1/connections/api-key", json=payload)).json()
    second = (await client.post("/v1/connections/api-key", json=payload)).json()

    assert first["status"] == "ACTIVE"
    assert first["is_existing"] is False
    assert second["is_existing"] is True
    assert second["connection_id"] == first["connection_id"]


@pytest.mark.asyncio
async def test_active_campaign_without_url(client, provider):
    response = await client.post(
        "/v1/connections/api-key", json={"auth_config_id": "ac_campaign", "api_key": "k"}
    )
    assert response.status_code == 400
    assert response.json()["code"] == "missing_credential"
    assert response.json()["field"] == "full"
    assert provider.connected_accounts.accounts == {}


@pytest.mark.asyncio
async def test_active_campaign_with_url(client, provider):
    response = await client.post(
        "/v1/connections/api-key",
        json={"auth_config_id": "ac_campaign", "api_key": "k", "api_url": "https://a.api-us1.com"},
    )
    assert response.status_code == 200
    assert provider.connected_accounts.initiate_calls[0]["fields"] == {
        "generic_api_key": "k",
        "full": "https://a.api-us1.com",
    }


@pytest.mark.asyncio
async def test_provider_rejection_is_400(client, provider):
    provider.connected_accounts.reject_with = "Invalid API key"
    response = await client.post(
        "/v1/connections/api-key", json={"auth_config_id": "ac_mailchimp", "api_key": "bad"}
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid API key"


@pytest.mark.asyncio
async def test_auto_connect(client, provider, monkeypatch):
    monkeypatch.setenv("APIFY_API_KEY", "server-held")
    first = await client.post("/v1/connections/auto/apify")
    second = await client.post("/v1/connections/auto/apify")
    assert first.json()["is_existing"] is False
    assert second.json()["is_existing"] is True


@pytest.mark.asyncio
async def test_list_and_delete(client, provider):
    provider.add_account("ca_1", USER_ID, "gmail")
    provider.add_account("ca_2", OTHER_USER_ID, "gmail")

    body = (await client.get("/v1/connections")).json()
    assert body["total_connections"] == 1
    assert body["connections"][0] == {"toolkit": "GMAIL", "connection_id": "ca_1", "status": "ACTIVE"}

    assert (await client.delete("/v1/connections?connection_id=ca_2")).status_code == 403
    assert (await client.delete("/v1/connections?connection_id=ca_1")).status_code == 200
    assert (await client.delete("/v1/connections?connection_id=ca_1")).status_code == 404


@pytest.mark.asyncio
async def test_delete_requires_connection_id(client, provider):
    response = await client.delete("/v1/connections")
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_catalog(client, provider):
    provider.add_account("ca_1", USER_ID, "gmail")
    toolkits = (await client.get("/v1/connections/toolkits")).json()["toolkits"]
    assert [(t["slug"], t["is_connected"]) for t in toolkits] == [
        ("gmail", True),
        ("twitter", False),
        ("mailchimp", False),
    ]


@pytest.mark.asyncio
async def test_provider_not_configured(client):
    app.dependency_overrides.pop(get_provider)
    response = await client.get("/v1/connections")
    assert response.status_code == 503


# ── Callable views ──────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_callable_requires_both_layers(client, provider, seeded):
    await client.post("/v1/tools/user/toolkits", json={"toolkit_name": "Gmail", "enabled": True})

    response = await client.get("/v1/tools/GMAIL_SEND_EMAIL/callable")
    body = response.json()
    assert body["enabled"] is True
    assert body["connected"] is False
    assert body["callable"] is False
    assert body["reason"] == "disconnected"
    assert (await client.get("/v1/tools/callable")).json()["tools"] == []

    provider.add_account("ca_1", USER_ID, "gmail")
    body = (await client.get("/v1/tools/GMAIL_SEND_EMAIL/callable")).json()
    assert body["callable"] is True
    assert body["reason"] is None

    callable_tools = (await client.get("/v1/tools/callable")).json()["tools"]
    assert {t["slug"] for t in callable_tools} == {
        "GMAIL_SEND_EMAIL",
        "GMAIL_READ_EMAILS",
        "GMAIL_CREATE_DRAFT",
    }


@pytest.mark.asyncio
async def test_callable_in_agent_scope(client, provider, seeded, session_factory):
    provider.add_account("ca_1", USER_ID, "gmail")
    agent_id = await create_agent(session_factory)
    await client.post("/v1/tools/user/toolkits", json={"toolkit_name": "Gmail", "enabled": True})

    body = (await client.get(f"/v1/tools/callable?agent_id={agent_id}")).json()
    assert body["scope"] == "agent"
    assert body["tools"] == []

    await client.post(
        f"/v1/tools/agent/{agent_id}", json={"tool_slug": "GMAIL_SEND_EMAIL", "enabled": True}
    )
    body = (await client.get(f"/v1/tools/callable?agent_id={agent_id}")).json()
    assert [t["slug"] for t in body["tools"]] == ["GMAIL_SEND_EMAIL"]


@pytest.mark.asyncio
async def test_callable_unknown_tool(client, provider, seeded):
    response = await client.get("/v1/tools/NOPE/callable")
    assert response.status_code == 404
