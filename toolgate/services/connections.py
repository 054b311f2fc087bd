"""Connection-authorization engine.

Manages the provider credential ("connection") that links a user to a
toolkit. Per (user, toolkit):

    NONE -> INITIATED -> ACTIVE | FAILED
    ACTIVE -> REVOKED   (a new NONE -> INITIATED cycle is needed afterwards)

Two ways in:

  API key   synchronous. The field map is built here (with per-toolkit
            field names) and the provider answers ACTIVE or FAILED at once.
  Redirect  OAuth. The provider returns a URL; the user completes it out of
            band and the provider flips the state later. Nothing here waits.

Only ACTIVE connections are authoritative. Before creating a connection the
engine looks for an ACTIVE one for the same toolkit and returns it instead
(``is_existing=True``), so repeated connects never create duplicates.
INITIATED connections never expire here.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Optional

from toolgate.config import Settings, settings as default_settings
from toolgate.errors import (
    BadRequestError,
    ForbiddenError,
    MissingCredentialError,
    NotFoundError,
)
from toolgate.logging_config import get_logger
from toolgate.providers import AuthConfig, ConnectedAccount, ProviderPlatform

logger = get_logger(__name__)


class ConnectionStatus(str, enum.Enum):
    INITIALIZING = "INITIALIZING"
    INITIATED = "INITIATED"
    ACTIVE = "ACTIVE"
    FAILED = "FAILED"
    EXPIRED = "EXPIRED"
    INACTIVE = "INACTIVE"
    REVOKED = "REVOKED"


class AuthScheme(str, enum.Enum):
    API_KEY = "API_KEY"
    OAUTH2 = "OAUTH2"
    OAUTH1 = "OAUTH1"
    BEARER_TOKEN = "BEARER_TOKEN"
    BASIC = "BASIC"


@dataclass(frozen=True)
class FieldMapping:
    """How a toolkit names its API-key credential fields."""

    key_field: str = "api_key"
    # Toolkits that take the account URL alongside the key
    url_field: Optional[str] = None
    url_required: bool = False
    # Fill other required fields from the provider's declared defaults
    use_provider_defaults: bool = True


DEFAULT_MAPPING = FieldMapping()

FIELD_MAPPINGS: dict[str, FieldMapping] = {
    "active_campaign": FieldMapping(
        key_field="generic_api_key",
        url_field="full",
        url_required=True,
        use_provider_defaults=False,
    ),
}


def mapping_for(toolkit_slug: str) -> FieldMapping:
    return FIELD_MAPPINGS.get(toolkit_slug.lower(), DEFAULT_MAPPING)


@dataclass
class ConnectionResult:
    connection_id: str
    status: str
    toolkit_slug: str
    redirect_url: Optional[str] = None
    is_existing: bool = False


@dataclass
class ConnectionSummary:
    toolkit: str
    connection_id: str
    status: str


@dataclass
class ToolkitCatalogEntry:
    slug: str
    name: str
    description: Optional[str] = None
    logo: Optional[str] = None
    categories: list[dict] = field(default_factory=list)
    is_connected: bool = False
    connection_id: Optional[str] = None


def _same_toolkit(a: str, b: str) -> bool:
    return a.lower() == b.lower()


class ConnectionEngine:
    def __init__(self, provider: ProviderPlatform, settings: Optional[Settings] = None):
        self.provider = provider
        self.settings = settings or default_settings

    # ── Reads ──────────────────────────────────────────────────────────────

    async def _accounts(self, user_id: str) -> list[ConnectedAccount]:
        accounts = await self.provider.connected_accounts.list(user_ids=[user_id])
        owned = []
        for account in accounts:
            if account.user_id == user_id:
                owned.append(account)
            elif account.user_id is None:
                logger.warning(f"Ignoring connection {account.id} with no owner")
        # Some provider versions ignore the filter; rows of other users are dropped
        return owned

    async def list(self, user_id: str, active_only: bool = False) -> list[ConnectionSummary]:
        """Connections for the user; toolkit slugs are upper-cased."""
        summaries = []
        for account in await self._accounts(user_id):
            if active_only and account.status != ConnectionStatus.ACTIVE.value:
                continue
            summaries.append(
                ConnectionSummary(
                    toolkit=account.toolkit_slug.upper(),
                    connection_id=account.id,
                    status=account.status,
                )
            )
        return summaries

    async def find_active(self, user_id: str, toolkit_slug: str) -> Optional[ConnectedAccount]:
        for account in await self._accounts(user_id):
            if (
                _same_toolkit(account.toolkit_slug, toolkit_slug)
                and account.status == ConnectionStatus.ACTIVE.value
            ):
                return account
        return None

    async def active_toolkits(self, user_id: str) -> dict[str, str]:
        """Lower-cased toolkit slug -> connection id for every ACTIVE connection."""
        active: dict[str, str] = {}
        for account in await self._accounts(user_id):
            if account.status == ConnectionStatus.ACTIVE.value:
                active.setdefault(account.toolkit_slug.lower(), account.id)
        return active

    async def status(self, connection_id: str, user_id: Optional[str] = None) -> ConnectedAccount:
        """Current state of a connection; does not wait for completion."""
        account = await self.provider.connected_accounts.get(connection_id)
        if user_id is not None and account.user_id != user_id:
            if account.user_id is None:
                logger.warning(f"Connection {connection_id} has no owner; refusing access")
            raise ForbiddenError("Connection belongs to another user")
        return account

    async def catalog(self, user_id: str) -> list[ToolkitCatalogEntry]:
        """Supported toolkits with provider metadata and connection state.

        A toolkit whose metadata lookup fails is logged and left out.
        """
        connected = await self.active_toolkits(user_id)

        entries = []
        for slug in self.settings.supported_toolkits:
            try:
                info = await self.provider.toolkits.get(slug)
            except Exception as e:
                logger.error(f"Failed to fetch toolkit {slug}: {e}")
                continue
            connection_id = connected.get(slug.lower())
            entries.append(
                ToolkitCatalogEntry(
                    slug=info.slug,
                    name=info.name,
                    description=info.description,
                    logo=info.logo,
                    categories=info.categories,
                    is_connected=connection_id is not None,
                    connection_id=connection_id,
                )
            )
        return entries

    # ── Writes ─────────────────────────────────────────────────────────────

    def _existing(self, account: ConnectedAccount) -> ConnectionResult:
        return ConnectionResult(
            connection_id=account.id,
            status=account.status,
            toolkit_slug=account.toolkit_slug,
            is_existing=True,
        )

    async def _build_api_key_fields(
        self,
        toolkit_slug: str,
        api_key: str,
        extra_fields: dict,
    ) -> dict[str, str]:
        mapping = mapping_for(toolkit_slug)
        fields: dict[str, str] = {mapping.key_field: api_key}

        if mapping.url_field:
            url = extra_fields.get(mapping.url_field) or extra_fields.get("api_url")
            if url:
                fields[mapping.url_field] = url
            elif mapping.url_required:
                raise MissingCredentialError(mapping.url_field, toolkit_slug)

        if mapping.use_provider_defaults:
            required = await self.provider.toolkits.initiation_fields(
                toolkit_slug, AuthScheme.API_KEY.value, required_only=True
            )
            for field_spec in required:
                if field_spec.name in fields:
                    continue
                if extra_fields.get(field_spec.name):
                    fields[field_spec.name] = extra_fields[field_spec.name]
                elif field_spec.default is not None:
                    fields[field_spec.name] = field_spec.default
                else:
                    raise MissingCredentialError(field_spec.name, toolkit_slug)

        # Anything else the caller passed explicitly is forwarded as-is
        for name, value in extra_fields.items():
            if name != "api_url" and value and name not in fields:
                fields[name] = value
        return fields

    async def initiate_api_key(
        self,
        user_id: str,
        auth_config_id: str,
        api_key: Optional[str] = None,
        extra_fields: Optional[dict] = None,
    ) -> ConnectionResult:
        """Connect with an API key; the provider answers ACTIVE or FAILED at once."""
        auth_config = await self.provider.auth_configs.get(auth_config_id)
        return await self._connect_with_key(user_id, auth_config, api_key, extra_fields or {})

    async def _connect_with_key(
        self,
        user_id: str,
        auth_config: AuthConfig,
        api_key: Optional[str],
        extra_fields: dict,
    ) -> ConnectionResult:
        toolkit_slug = auth_config.toolkit_slug

        existing = await self.find_active(user_id, toolkit_slug)
        if existing:
            logger.info(
                f"User {user_id} already has active {toolkit_slug} connection {existing.id}"
            )
            return self._existing(existing)

        if not api_key:
            api_key = self.settings.fallback_api_key(toolkit_slug)
            if api_key:
                logger.info(f"Using server-held API key for toolkit {toolkit_slug}")
        if not api_key:
            raise MissingCredentialError(mapping_for(toolkit_slug).key_field, toolkit_slug)

        fields = await self._build_api_key_fields(toolkit_slug, api_key, extra_fields)
        logger.info(
            f"Initiating API key connection for user {user_id}, toolkit {toolkit_slug}, "
            f"fields {sorted(fields)}"
        )
        try:
            request = await self.provider.connected_accounts.initiate(
                user_id,
                auth_config.id,
                auth_scheme=AuthScheme.API_KEY.value,
                fields=fields,
            )
        except Exception as e:
            logger.error(
                f"API key connection failed for toolkit {toolkit_slug} "
                f"(fields {sorted(fields)}): {e}"
            )
            raise

        return ConnectionResult(
            connection_id=request.id,
            status=request.status or ConnectionStatus.ACTIVE.value,
            toolkit_slug=toolkit_slug,
        )

    async def initiate_redirect(self, user_id: str, auth_config_id: str) -> ConnectionResult:
        """Start an OAuth connection and return the URL the user must visit."""
        auth_config = await self.provider.auth_configs.get(auth_config_id)
        return await self._connect_with_redirect(user_id, auth_config)

    async def _connect_with_redirect(
        self, user_id: str, auth_config: AuthConfig
    ) -> ConnectionResult:
        toolkit_slug = auth_config.toolkit_slug
        existing = await self.find_active(user_id, toolkit_slug)
        if existing:
            return self._existing(existing)

        try:
            request = await self.provider.connected_accounts.initiate(
                user_id, auth_config.id
            )
        except Exception as e:
            logger.error(f"Redirect connection failed for toolkit {toolkit_slug}: {e}")
            raise

        logger.info(
            f"Initiated {toolkit_slug} connection {request.id} for user {user_id}"
        )
        return ConnectionResult(
            connection_id=request.id,
            status=request.status or ConnectionStatus.INITIATED.value,
            toolkit_slug=toolkit_slug,
            redirect_url=request.redirect_url,
        )

    async def initiate(
        self,
        user_id: str,
        auth_config_id: str,
        credential_fields: Optional[dict] = None,
    ) -> ConnectionResult:
        """Dispatch on the auth config's scheme: API key or redirect."""
        auth_config = await self.provider.auth_configs.get(auth_config_id)
        if auth_config.auth_scheme == AuthScheme.API_KEY.value:
            fields = dict(credential_fields or {})
            api_key = fields.pop("api_key", None)
            return await self._connect_with_key(user_id, auth_config, api_key, fields)
        return await self._connect_with_redirect(user_id, auth_config)

    async def auto_connect(self, user_id: str, toolkit_slug: str) -> ConnectionResult:
        """Connect a toolkit using only the server-held API key."""
        slug = toolkit_slug.lower()
        if not self.settings.fallback_api_key(slug):
            raise BadRequestError(f"No server-held API key configured for {slug}")

        configs = await self.provider.auth_configs.list(toolkit=slug)
        if not configs:
            raise NotFoundError(f"No auth configuration found for {slug}")
        api_key_config = next(
            (c for c in configs if c.auth_scheme == AuthScheme.API_KEY.value), None
        )
        if api_key_config is None:
            raise NotFoundError(f"No API_KEY auth configuration found for {slug}")

        return await self._connect_with_key(user_id, api_key_config, None, {})

    async def revoke(self, connection_id: str, user_id: Optional[str] = None) -> None:
        """Delete a connection. Unknown ids raise NotFoundError."""
        if user_id is not None:
            await self.status(connection_id, user_id)
        await self.provider.connected_accounts.delete(connection_id)
        logger.info(f"Revoked connection {connection_id}")
