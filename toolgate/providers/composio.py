"""HTTP client for the Composio provider platform (v3 REST API).

Exposes the three capability groups the connection engine needs:

  client.auth_configs        get / list
  client.connected_accounts  initiate / list / get / delete
  client.toolkits            get / initiation_fields

Error mapping:
  404 on a lookup             -> NotFoundError
  other 4xx                   -> ProviderRejectedError (provider message kept)
  5xx or transport failure    -> ProviderError
"""

from typing import Any, Optional

import httpx

from toolgate.errors import NotFoundError, ProviderError, ProviderRejectedError
from toolgate.logging_config import get_logger
from toolgate.providers import (
    AuthConfig,
    ConnectedAccount,
    ConnectionRequest,
    ToolkitField,
    ToolkitInfo,
)

logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://backend.composio.dev/api/v3"


def _error_message(response: httpx.Response) -> str:
    """Pull a human-readable message out of a provider error response."""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            return error.get("message") or str(error)
        if error:
            return str(error)
        if body.get("message"):
            return str(body["message"])
    return response.text or f"HTTP {response.status_code}"


def _slug_of(obj: Any) -> str:
    if isinstance(obj, dict):
        return obj.get("slug") or ""
    return obj or ""


def _parse_auth_config(data: dict) -> AuthConfig:
    return AuthConfig(
        id=data["id"],
        toolkit_slug=_slug_of(data.get("toolkit")),
        auth_scheme=data.get("auth_scheme") or data.get("authScheme") or "",
        name=data.get("name"),
    )


def _parse_connected_account(data: dict) -> ConnectedAccount:
    auth_config = data.get("auth_config") or {}
    return ConnectedAccount(
        id=data["id"],
        user_id=data.get("user_id"),
        toolkit_slug=_slug_of(data.get("toolkit")),
        status=data.get("status") or "",
        auth_config_id=auth_config.get("id") if isinstance(auth_config, dict) else None,
    )


def _parse_field(data: dict) -> ToolkitField:
    return ToolkitField(
        name=data["name"],
        display_name=data.get("displayName") or data.get("display_name") or "",
        type=data.get("type") or "string",
        default=data.get("default"),
        required=bool(data.get("required", False)),
    )


class _Group:
    def __init__(self, client: "ComposioClient"):
        self._client = client


class AuthConfigs(_Group):
    async def get(self, auth_config_id: str) -> AuthConfig:
        data = await self._client.request(
            "GET",
            f"/auth_configs/{auth_config_id}",
            not_found=f"Auth config {auth_config_id} not found",
        )
        return _parse_auth_config(data)

    async def list(self, toolkit: Optional[str] = None) -> list[AuthConfig]:
        params = {"toolkit_slug": toolkit} if toolkit else None
        data = await self._client.request("GET", "/auth_configs", params=params)
        return [_parse_auth_config(item) for item in (data or {}).get("items", [])]


class ConnectedAccounts(_Group):
    async def initiate(
        self,
        user_id: str,
        auth_config_id: str,
        auth_scheme: Optional[str] = None,
        fields: Optional[dict] = None,
    ) -> ConnectionRequest:
        connection: dict[str, Any] = {"user_id": user_id}
        if auth_scheme:
            connection["state"] = {"authScheme": auth_scheme, "val": fields or {}}
        data = await self._client.request(
            "POST",
            "/connected_accounts",
            json={"auth_config": {"id": auth_config_id}, "connection": connection},
            not_found=f"Auth config {auth_config_id} not found",
        )
        return ConnectionRequest(
            id=data["id"],
            status=data.get("status"),
            redirect_url=data.get("redirect_url") or data.get("redirectUrl"),
        )

    async def list(self, user_ids: list[str]) -> list[ConnectedAccount]:
        data = await self._client.request(
            "GET", "/connected_accounts", params={"user_ids": ",".join(user_ids)}
        )
        return [
            _parse_connected_account(item) for item in (data or {}).get("items", [])
        ]

    async def get(self, connection_id: str) -> ConnectedAccount:
        data = await self._client.request(
            "GET",
            f"/connected_accounts/{connection_id}",
            not_found=f"Connection {connection_id} not found",
        )
        return _parse_connected_account(data)

    async def delete(self, connection_id: str) -> None:
        await self._client.request(
            "DELETE",
            f"/connected_accounts/{connection_id}",
            not_found=f"Connection {connection_id} not found",
        )


class Toolkits(_Group):
    async def get(self, slug: str) -> ToolkitInfo:
        data = await self._client.request(
            "GET", f"/toolkits/{slug.lower()}", not_found=f"Toolkit {slug} not found"
        )
        meta = data.get("meta") or {}
        return ToolkitInfo(
            slug=data.get("slug", slug.lower()),
            name=data.get("name", slug),
            description=meta.get("description"),
            logo=meta.get("logo"),
            categories=meta.get("categories") or [],
        )

    async def initiation_fields(
        self, slug: str, auth_scheme: str, required_only: bool = True
    ) -> list[ToolkitField]:
        data = await self._client.request(
            "GET",
            f"/toolkits/{slug.lower()}/connected_account_initiation_fields",
            params={
                "auth_scheme": auth_scheme,
                "required_only": "true" if required_only else "false",
            },
            not_found=f"Toolkit {slug} not found",
        )
        if isinstance(data, dict):
            items = list(data.get("required", []))
            if not required_only:
                items += data.get("optional", [])
        else:
            items = data or []
        return [_parse_field(item) for item in items]


class ComposioClient:
    """Long-lived async client for the provider platform."""

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
    ):
        self.base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._http: httpx.AsyncClient | None = None

        self.auth_configs = AuthConfigs(self)
        self.connected_accounts = ConnectedAccounts(self)
        self.toolkits = Toolkits(self)

    @property
    def http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self._timeout,
                headers={"x-api-key": self._api_key},
            )
        return self._http

    async def close(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict] = None,
        json: Optional[dict] = None,
        not_found: Optional[str] = None,
    ) -> Any:
        """Send a request and translate failures into domain errors."""
        try:
            response = await self.http.request(method, path, params=params, json=json)
        except httpx.RequestError as e:
            logger.error(f"Provider request {method} {path} failed: {e}")
            raise ProviderError(f"Provider request failed: {e}") from e

        if response.status_code == 404 and not_found:
            raise NotFoundError(not_found)
        if response.status_code >= 500:
            message = _error_message(response)
            logger.error(
                f"Provider {method} {path} returned {response.status_code}: {message}"
            )
            raise ProviderError(message, provider_status=response.status_code)
        if response.status_code >= 400:
            message = _error_message(response)
            logger.warning(
                f"Provider {method} {path} rejected with {response.status_code}: {message}"
            )
            raise ProviderRejectedError(message, provider_status=response.status_code)

        if response.status_code == 204 or not response.content:
            return None
        return response.json()
