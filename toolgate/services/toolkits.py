"""Toolkit aggregator.

Derives toolkit-level status from tool-level flags. A toolkit is enabled
under a scope only when it has at least one active tool and every one of
them is enabled (AND-aggregation). Partially enabled toolkits report
``is_enabled=False`` even though their enabled tools stay callable.

Bulk operations compose ``set_toolkit_enabled``. Each toolkit is committed
on its own; if one fails, the toolkits committed before it stay committed
and are reported through ToolkitBulkError.
"""

from dataclasses import dataclass, field, asdict
from typing import Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from toolgate.errors import ToolgateError
from toolgate.logging_config import get_logger
from toolgate.services import events
from toolgate.services.preferences import PreferenceStore, Scope
from toolgate.services.registry import ToolRegistry

logger = get_logger(__name__)


def toolkit_enabled(tool_slugs: Iterable[str], enabled_slugs: set[str]) -> bool:
    """True iff the toolkit has tools and all of them are enabled."""
    slugs = list(tool_slugs)
    return len(slugs) > 0 and all(slug in enabled_slugs for slug in slugs)


@dataclass
class ToolkitStatus:
    toolkit_name: str
    toolkit_slug: str
    tool_count: int
    is_enabled: bool
    description: Optional[str] = None


@dataclass
class ToolkitWrite:
    toolkit_name: str
    tools_affected: int


@dataclass
class BulkToolkitResult:
    total_tools_affected: int = 0
    per_toolkit: list[ToolkitWrite] = field(default_factory=list)

    def add(self, toolkit_name: str, tools_affected: int) -> None:
        self.per_toolkit.append(ToolkitWrite(toolkit_name, tools_affected))
        self.total_tools_affected += tools_affected

    def to_dict(self) -> dict:
        return asdict(self)


class ToolkitBulkError(ToolgateError):
    """A bulk toolkit write stopped partway; carries what was committed."""

    code = "bulk_partial_failure"

    def __init__(self, failed_toolkit: str, completed: BulkToolkitResult, cause: Exception):
        super().__init__(
            f"Bulk toolkit update failed at {failed_toolkit} after "
            f"{len(completed.per_toolkit)} toolkits: {cause}"
        )
        self.failed_toolkit = failed_toolkit
        self.completed = completed

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["failed_toolkit"] = self.failed_toolkit
        data["completed"] = self.completed.to_dict()
        return data


class ToolkitAggregator:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.registry = ToolRegistry(session)

    def _store(self, scope: Scope) -> PreferenceStore:
        return PreferenceStore(self.session, scope)

    async def list_with_status(self, scope: Scope, scope_id: str) -> list[ToolkitStatus]:
        groups = await self.registry.toolkits()
        enabled = await self._store(scope).enabled_slugs(scope_id)
        return [
            ToolkitStatus(
                toolkit_name=group.toolkit_name,
                toolkit_slug=group.toolkit_slug,
                tool_count=group.tool_count,
                is_enabled=toolkit_enabled(group.tool_slugs, enabled),
                description=group.description,
            )
            for group in groups
        ]

    async def enabled_toolkit_names(self, scope: Scope, scope_id: str) -> list[str]:
        statuses = await self.list_with_status(scope, scope_id)
        return [s.toolkit_name for s in statuses if s.is_enabled]

    async def set_toolkit_enabled(
        self, scope: Scope, scope_id: str, toolkit_name: str, enabled: bool
    ) -> int:
        """Write ``enabled`` for every tool in the toolkit; returns the count."""
        slugs = await self.registry.tools_in_toolkit(toolkit_name)
        if not slugs:
            logger.info(f"Toolkit {toolkit_name} has no active tools; nothing written")
            return 0
        written = await self._store(scope).set_many(scope_id, slugs, enabled)
        await events.publish_preferences_changed(scope.value, scope_id)
        return written

    async def _apply(
        self, scope: Scope, scope_id: str, toolkit_names: list[str], enabled: bool
    ) -> BulkToolkitResult:
        result = BulkToolkitResult()
        for toolkit_name in toolkit_names:
            try:
                affected = await self.set_toolkit_enabled(
                    scope, scope_id, toolkit_name, enabled
                )
                await self.session.commit()
            except Exception as e:
                await self.session.rollback()
                logger.error(
                    f"Bulk toolkit update for {scope.value} {scope_id} failed at "
                    f"{toolkit_name}; {len(result.per_toolkit)} toolkits committed"
                )
                raise ToolkitBulkError(toolkit_name, result, e) from e
            result.add(toolkit_name, affected)
        return result

    async def bulk_set_all(self, scope: Scope, scope_id: str, enabled: bool) -> BulkToolkitResult:
        """Enable or disable every known toolkit for the scope id."""
        groups = await self.registry.toolkits()
        names = list(dict.fromkeys(g.toolkit_name for g in groups))
        result = await self._apply(scope, scope_id, names, enabled)
        logger.info(
            f"Bulk {'enabled' if enabled else 'disabled'} {result.total_tools_affected} "
            f"tools across {len(result.per_toolkit)} toolkits for {scope.value} {scope_id}"
        )
        return result

    async def copy_selection(
        self, agent_id: str, toolkit_names: list[str]
    ) -> BulkToolkitResult:
        """Enable the named toolkits on an agent. Additive only."""
        names = [n for n in dict.fromkeys(toolkit_names) if isinstance(n, str) and n]
        result = await self._apply(Scope.AGENT, agent_id, names, True)
        logger.info(
            f"Copied {result.total_tools_affected} tools from "
            f"{len(result.per_toolkit)} user toolkits to agent {agent_id}"
        )
        return result
