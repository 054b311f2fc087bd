"""Tool preference store, generic over scope kind.

One implementation serves both scopes; ``Scope`` selects the table and the
column holding the scope id:

  Scope.USER   -> user_tool_preferences.user_id
  Scope.AGENT  -> agent_tool_preferences.agent_id

Writes are upserts against the unique (scope id, tool_slug) constraint, so
two concurrent toggles of the same pair converge to last-write-wins without
duplicate rows.
"""

import enum
from dataclasses import dataclass

from sqlalchemy import select, delete
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from toolgate.errors import PartialWriteError, ToolgateError
from toolgate.logging_config import get_logger
from toolgate.models.preference import AgentToolPreference, UserToolPreference
from toolgate.utils import now_ms

logger = get_logger(__name__)


class Scope(str, enum.Enum):
    USER = "user"
    AGENT = "agent"


_SCOPE_TABLES = {
    Scope.USER: (UserToolPreference, "user_id"),
    Scope.AGENT: (AgentToolPreference, "agent_id"),
}


@dataclass
class ToolPreference:
    tool_slug: str
    is_enabled: bool
    updated_at: int


class PreferenceStore:
    def __init__(self, session: AsyncSession, scope: Scope):
        self.session = session
        self.scope = Scope(scope)
        self.model, id_column = _SCOPE_TABLES[self.scope]
        self.id_column_name = id_column
        self.scope_column = getattr(self.model, id_column)

    def _insert(self):
        dialect = self.session.get_bind().dialect.name
        if dialect == "postgresql":
            return pg_insert(self.model)
        if dialect == "sqlite":
            return sqlite_insert(self.model)
        raise ToolgateError(f"Preference upsert is not supported on the {dialect} dialect")

    async def get(self, scope_id: str) -> list[ToolPreference]:
        """Every stored row for the scope id, ordered by tool slug."""
        result = await self.session.execute(
            select(self.model)
            .where(self.scope_column == scope_id)
            .order_by(self.model.tool_slug)
            .execution_options(populate_existing=True)
        )
        return [
            ToolPreference(
                tool_slug=row.tool_slug,
                is_enabled=row.is_enabled,
                updated_at=row.updated_at,
            )
            for row in result.scalars().all()
        ]

    async def enabled_slugs(self, scope_id: str) -> set[str]:
        result = await self.session.execute(
            select(self.model.tool_slug).where(
                self.scope_column == scope_id,
                self.model.is_enabled == True,  # noqa: E712
            )
        )
        return set(result.scalars().all())

    async def is_enabled(self, scope_id: str, tool_slug: str) -> bool:
        """Closed-world read: no row means not enabled."""
        result = await self.session.execute(
            select(self.model.is_enabled).where(
                self.scope_column == scope_id,
                self.model.tool_slug == tool_slug,
            )
        )
        return bool(result.scalar_one_or_none())

    async def set(self, scope_id: str, tool_slug: str, enabled: bool) -> None:
        await self.set_many(scope_id, [tool_slug], enabled)

    async def set_many(self, scope_id: str, tool_slugs: list[str], enabled: bool) -> int:
        """Upsert ``enabled`` for every slug in one statement.

        Returns the number of distinct slugs written. The statement either
        applies to every row or to none; a storage failure raises
        PartialWriteError.
        """
        slugs = list(dict.fromkeys(tool_slugs))
        if not slugs:
            return 0

        now = now_ms()
        stmt = self._insert().values(
            [
                {
                    self.id_column_name: scope_id,
                    "tool_slug": slug,
                    "is_enabled": enabled,
                    "updated_at": now,
                }
                for slug in slugs
            ]
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[self.id_column_name, "tool_slug"],
            set_={"is_enabled": stmt.excluded.is_enabled, "updated_at": now},
        )

        try:
            await self.session.execute(stmt)
        except SQLAlchemyError as e:
            logger.error(
                f"Preference write failed for {self.scope.value} {scope_id} "
                f"({len(slugs)} tools): {e}"
            )
            raise PartialWriteError(
                f"Failed to write {len(slugs)} {self.scope.value} tool preferences",
                attempted=len(slugs),
            ) from e
        return len(slugs)

    async def delete_for_tool(self, tool_slug: str) -> int:
        result = await self.session.execute(
            delete(self.model).where(self.model.tool_slug == tool_slug)
        )
        return result.rowcount or 0

    async def delete_for_scope(self, scope_id: str) -> int:
        result = await self.session.execute(
            delete(self.model).where(self.scope_column == scope_id)
        )
        return result.rowcount or 0
