"""Authorization facade: is tool T callable for (user U, agent A)?

Exactly one enablement scope applies per call. Agent-bound invocations read
the agent's preferences; bare user invocations read the user's. The two are
never merged. On top of that the user must hold an ACTIVE connection to the
tool's toolkit. The component results are kept apart in ``CallableStatus``
so callers can tell "disabled" from "disconnected".
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from toolgate.models.tool import AvailableTool
from toolgate.services.agents import AgentService
from toolgate.services.connections import ConnectionEngine
from toolgate.services.preferences import PreferenceStore, Scope
from toolgate.services.registry import ToolRegistry


@dataclass
class CallableStatus:
    tool_slug: str
    toolkit_slug: str
    scope: str
    scope_id: str
    active: bool
    enabled: bool
    connected: bool

    @property
    def callable(self) -> bool:
        return self.active and self.enabled and self.connected

    def reason(self) -> Optional[str]:
        if not self.active:
            return "inactive"
        if not self.enabled:
            return "disabled"
        if not self.connected:
            return "disconnected"
        return None


class AuthorizationFacade:
    def __init__(self, session: AsyncSession, connections: ConnectionEngine):
        self.session = session
        self.registry = ToolRegistry(session)
        self.connections = connections

    async def _resolve_scope(self, user_id: str, agent_id: Optional[str]) -> tuple[Scope, str]:
        if agent_id:
            await AgentService(self.session).require_readable(agent_id, user_id)
            return Scope.AGENT, agent_id
        return Scope.USER, user_id

    async def check(
        self, user_id: str, tool_slug: str, agent_id: Optional[str] = None
    ) -> CallableStatus:
        """Both authorization layers for one tool. Raises NotFoundError for unknown tools."""
        tool = await self.registry.get(tool_slug)
        scope, scope_id = await self._resolve_scope(user_id, agent_id)

        enabled = await PreferenceStore(self.session, scope).is_enabled(scope_id, tool.slug)
        active_toolkits = await self.connections.active_toolkits(user_id)

        return CallableStatus(
            tool_slug=tool.slug,
            toolkit_slug=tool.toolkit_slug,
            scope=scope.value,
            scope_id=scope_id,
            active=tool.is_active,
            enabled=enabled,
            connected=tool.toolkit_slug.lower() in active_toolkits,
        )

    async def is_callable(
        self, user_id: str, tool_slug: str, agent_id: Optional[str] = None
    ) -> bool:
        status = await self.check(user_id, tool_slug, agent_id)
        return status.callable

    async def callable_tools(
        self, user_id: str, agent_id: Optional[str] = None
    ) -> list[AvailableTool]:
        """Every active tool that is enabled in scope and has an ACTIVE connection."""
        scope, scope_id = await self._resolve_scope(user_id, agent_id)
        enabled = await PreferenceStore(self.session, scope).enabled_slugs(scope_id)
        if not enabled:
            return []
        active_toolkits = await self.connections.active_toolkits(user_id)
        if not active_toolkits:
            return []
        return [
            tool
            for tool in await self.registry.list()
            if tool.slug in enabled and tool.toolkit_slug.lower() in active_toolkits
        ]
