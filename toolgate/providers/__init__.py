"""Provider platform interface.

The connection engine talks to the provider platform (the third-party tool
directory and credential broker) only through ``ProviderPlatform``. One
client is constructed per process and injected; tests substitute a fake.
"""

from dataclasses import dataclass, field
from typing import Optional, Protocol


@dataclass
class AuthConfig:
    id: str
    toolkit_slug: str
    auth_scheme: str
    name: Optional[str] = None


@dataclass
class ConnectedAccount:
    id: str
    user_id: Optional[str]
    toolkit_slug: str
    status: str
    auth_config_id: Optional[str] = None


@dataclass
class ConnectionRequest:
    id: str
    status: Optional[str] = None
    redirect_url: Optional[str] = None


@dataclass
class ToolkitField:
    name: str
    display_name: str = ""
    type: str = "string"
    default: Optional[str] = None
    required: bool = False


@dataclass
class ToolkitInfo:
    slug: str
    name: str
    description: Optional[str] = None
    logo: Optional[str] = None
    categories: list[dict] = field(default_factory=list)


class AuthConfigsAPI(Protocol):
    async def get(self, auth_config_id: str) -> AuthConfig: ...

    async def list(self, toolkit: Optional[str] = None) -> list[AuthConfig]: ...


class ConnectedAccountsAPI(Protocol):
    async def initiate(
        self,
        user_id: str,
        auth_config_id: str,
        auth_scheme: Optional[str] = None,
        fields: Optional[dict] = None,
    ) -> ConnectionRequest: ...

    async def list(self, user_ids: list[str]) -> list[ConnectedAccount]: ...

    async def get(self, connection_id: str) -> ConnectedAccount: ...

    async def delete(self, connection_id: str) -> None: ...


class ToolkitsAPI(Protocol):
    async def get(self, slug: str) -> ToolkitInfo: ...

    async def initiation_fields(
        self, slug: str, auth_scheme: str, required_only: bool = True
    ) -> list[ToolkitField]: ...


class ProviderPlatform(Protocol):
    auth_configs: AuthConfigsAPI
    connected_accounts: ConnectedAccountsAPI
    toolkits: ToolkitsAPI

    async def close(self) -> None: ...


__all__ = [
    "AuthConfig",
    "ConnectedAccount",
    "ConnectionRequest",
    "ToolkitField",
    "ToolkitInfo",
    "AuthConfigsAPI",
    "ConnectedAccountsAPI",
    "ToolkitsAPI",
    "ProviderPlatform",
]
