"""Available-tool registry.

Source of truth for which tools could ever be enabled. Toolkits are the
group-by of active tools over (toolkit_name, toolkit_slug); they have no
table of their own.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from toolgate.errors import DuplicateError, NotFoundError
from toolgate.logging_config import get_logger
from toolgate.models.tool import AvailableTool
from toolgate.services import events
from toolgate.utils import now_ms

logger = get_logger(__name__)

# Fields that may change after registration; slug and toolkit are fixed.
MUTABLE_FIELDS = ("display_name", "description", "is_active")


@dataclass
class ToolkitGroup:
    """One toolkit as seen through the registry."""

    toolkit_name: str
    toolkit_slug: str
    tool_slugs: list[str] = field(default_factory=list)
    description: Optional[str] = None

    @property
    def tool_count(self) -> int:
        return len(self.tool_slugs)


class ToolRegistry:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list(self, include_inactive: bool = False) -> list[AvailableTool]:
        """All tools ordered by display name, then slug."""
        stmt = select(AvailableTool)
        if not include_inactive:
            stmt = stmt.where(AvailableTool.is_active == True)  # noqa: E712
        stmt = stmt.order_by(AvailableTool.display_name, AvailableTool.slug)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find(self, slug: str) -> Optional[AvailableTool]:
        result = await self.session.execute(
            select(AvailableTool).where(AvailableTool.slug == slug)
        )
        return result.scalar_one_or_none()

    async def get(self, slug: str) -> AvailableTool:
        tool = await self.find(slug)
        if tool is None:
            raise NotFoundError(f"Tool {slug} not found")
        return tool

    async def existing_slugs(self, slugs: list[str]) -> set[str]:
        """Subset of ``slugs`` that are registered and active."""
        if not slugs:
            return set()
        result = await self.session.execute(
            select(AvailableTool.slug).where(
                AvailableTool.slug.in_(slugs),
                AvailableTool.is_active == True,  # noqa: E712
            )
        )
        return set(result.scalars().all())

    async def add(
        self,
        slug: str,
        toolkit_slug: str,
        toolkit_name: str,
        display_name: Optional[str] = None,
        description: Optional[str] = None,
        is_active: bool = True,
    ) -> AvailableTool:
        if await self.find(slug) is not None:
            raise DuplicateError(f"Tool {slug} already exists")

        now = now_ms()
        tool = AvailableTool(
            slug=slug,
            toolkit_slug=toolkit_slug,
            toolkit_name=toolkit_name,
            display_name=display_name,
            description=description,
            is_active=is_active,
            created_at=now,
            updated_at=now,
        )
        self.session.add(tool)
        await self.session.flush()
        logger.info(f"Registered tool {slug} in toolkit {toolkit_name}")
        await events.publish_registry_changed("added", slug)
        return tool

    async def update(self, slug: str, **fields) -> AvailableTool:
        """Update metadata fields; unknown or immutable fields are ignored."""
        tool = await self.get(slug)
        for key in MUTABLE_FIELDS:
            if key in fields and fields[key] is not None:
                setattr(tool, key, fields[key])
        tool.updated_at = now_ms()
        await self.session.flush()
        await events.publish_registry_changed("updated", slug)
        return tool

    async def delete(self, slug: str) -> AvailableTool:
        """Delete a tool and every preference row that references it."""
        from toolgate.services.preferences import PreferenceStore, Scope

        tool = await self.get(slug)
        removed = 0
        for scope in Scope:
            removed += await PreferenceStore(self.session, scope).delete_for_tool(slug)
        await self.session.delete(tool)
        await self.session.flush()
        logger.info(f"Deleted tool {slug} and {removed} preference rows")
        await events.publish_registry_changed("deleted", slug)
        return tool

    async def toolkits(self) -> list[ToolkitGroup]:
        """Active tools grouped by toolkit, ordered by toolkit name."""
        result = await self.session.execute(
            select(AvailableTool)
            .where(AvailableTool.is_active == True)  # noqa: E712
            .order_by(AvailableTool.toolkit_name, AvailableTool.slug)
        )
        groups: dict[tuple[str, str], ToolkitGroup] = {}
        for tool in result.scalars().all():
            key = (tool.toolkit_name, tool.toolkit_slug)
            group = groups.get(key)
            if group is None:
                group = groups[key] = ToolkitGroup(
                    toolkit_name=tool.toolkit_name, toolkit_slug=tool.toolkit_slug
                )
            group.tool_slugs.append(tool.slug)
            # Same rule as max(description) in SQL: keep the greatest
            if tool.description and (
                group.description is None or tool.description > group.description
            ):
                group.description = tool.description
        return list(groups.values())

    async def tools_in_toolkit(self, toolkit_name: str) -> list[str]:
        """Slugs of the active tools in a toolkit (empty for unknown toolkits)."""
        result = await self.session.execute(
            select(AvailableTool.slug)
            .where(
                AvailableTool.toolkit_name == toolkit_name,
                AvailableTool.is_active == True,  # noqa: E712
            )
            .order_by(AvailableTool.slug)
        )
        return list(result.scalars().all())

    async def count(self) -> int:
        result = await self.session.execute(select(func.count(AvailableTool.slug)))
        return result.scalar_one()
