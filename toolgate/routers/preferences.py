"""
Tool Preference API (user and agent scope)

Endpoints:

  GET    /v1/tools/user
  GET    /v1/tools/agent/{agent_id}
      Every active tool with its enabled flag for the scope.  A tool with
      no stored preference is reported as disabled.

  POST   /v1/tools/user
  POST   /v1/tools/agent/{agent_id}
      Single toggle.  Body: {tool_slug, enabled}.  Unknown tool -> 404.

  PUT    /v1/tools/user
  PUT    /v1/tools/agent/{agent_id}
      Bulk toggle.  Body: {tools: [{slug, enabled}, ...]}.
      Invalid entries (missing slug, non-boolean enabled, unknown or
      inactive tool) are skipped and echoed back in ``skipped``; the
      valid remainder is written in one transaction.

Agent endpoints require the caller to own the agent for writes; global
agents are readable by everyone.
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from toolgate.auth.dependencies import AuthUser, get_current_user
from toolgate.database import get_async_session
from toolgate.logging_config import get_logger
from toolgate.services import events
from toolgate.services.agents import AgentService
from toolgate.services.preferences import PreferenceStore, Scope
from toolgate.services.registry import ToolRegistry

logger = get_logger(__name__)

router = APIRouter()


# ── Pydantic schemas ───────────────────────────────────────────────────────────


class ToolWithStatus(BaseModel):
    slug: str
    toolkit_slug: str
    toolkit_name: str
    display_name: Optional[str] = None
    description: Optional[str] = None
    is_enabled: bool


class ToolStatusListResponse(BaseModel):
    tools: list[ToolWithStatus]


class PreferenceItem(BaseModel):
    tool_slug: str = Field(min_length=1)
    enabled: bool


class BulkPreferenceRequest(BaseModel):
    # Entries are validated one by one so a bad entry does not sink the batch
    tools: list[Any]


class SkippedEntry(BaseModel):
    index: int
    entry: Any
    reason: str


class PreferenceWriteResponse(BaseModel):
    success: bool = True
    updated: int
    skipped: list[SkippedEntry] = []


# ── Shared logic ───────────────────────────────────────────────────────────────


async def _list_with_status(
    session: AsyncSession, scope: Scope, scope_id: str
) -> ToolStatusListResponse:
    tools = await ToolRegistry(session).list()
    enabled = await PreferenceStore(session, scope).enabled_slugs(scope_id)
    return ToolStatusListResponse(
        tools=[
            ToolWithStatus(
                slug=t.slug,
                toolkit_slug=t.toolkit_slug,
                toolkit_name=t.toolkit_name,
                display_name=t.display_name,
                description=t.description,
                is_enabled=t.slug in enabled,
            )
            for t in tools
        ]
    )


async def _set_one(
    session: AsyncSession, scope: Scope, scope_id: str, item: PreferenceItem
) -> PreferenceWriteResponse:
    await ToolRegistry(session).get(item.tool_slug)
    await PreferenceStore(session, scope).set(scope_id, item.tool_slug, item.enabled)
    await events.publish_preferences_changed(scope.value, scope_id)
    return PreferenceWriteResponse(updated=1)


async def _set_bulk(
    session: AsyncSession, scope: Scope, scope_id: str, entries: list[Any]
) -> PreferenceWriteResponse:
    skipped: list[SkippedEntry] = []
    candidates: list[tuple[int, Any, str, bool]] = []

    for index, entry in enumerate(entries):
        slug = entry.get("slug") if isinstance(entry, dict) else None
        enabled = entry.get("enabled") if isinstance(entry, dict) else None
        if not isinstance(slug, str) or not slug or not isinstance(enabled, bool):
            skipped.append(SkippedEntry(index=index, entry=entry, reason="invalid"))
            continue
        candidates.append((index, entry, slug, enabled))

    known = await ToolRegistry(session).existing_slugs([c[2] for c in candidates])

    # Last entry wins when a slug is repeated
    wanted: dict[str, bool] = {}
    for index, entry, slug, enabled in candidates:
        if slug not in known:
            skipped.append(SkippedEntry(index=index, entry=entry, reason="unknown_tool"))
            continue
        wanted[slug] = enabled

    store = PreferenceStore(session, scope)
    updated = 0
    for value in (True, False):
        slugs = [slug for slug, enabled in wanted.items() if enabled is value]
        updated += await store.set_many(scope_id, slugs, value)

    if updated:
        await events.publish_preferences_changed(scope.value, scope_id)
    if skipped:
        logger.info(
            f"Bulk preference write for {scope.value} {scope_id}: "
            f"{updated} written, {len(skipped)} skipped"
        )
    skipped.sort(key=lambda s: s.index)
    return PreferenceWriteResponse(updated=updated, skipped=skipped)


# ── User scope ─────────────────────────────────────────────────────────────────


@router.get("/user", response_model=ToolStatusListResponse)
async def get_user_tools(
    session: AsyncSession = Depends(get_async_session),
    user: AuthUser = Depends(get_current_user),
):
    return await _list_with_status(session, Scope.USER, user.id)


@router.post("/user", response_model=PreferenceWriteResponse)
async def set_user_tool(
    req: PreferenceItem,
    session: AsyncSession = Depends(get_async_session),
    user: AuthUser = Depends(get_current_user),
):
    return await _set_one(session, Scope.USER, user.id, req)


@router.put("/user", response_model=PreferenceWriteResponse)
async def bulk_set_user_tools(
    req: BulkPreferenceRequest,
    session: AsyncSession = Depends(get_async_session),
    user: AuthUser = Depends(get_current_user),
):
    return await _set_bulk(session, Scope.USER, user.id, req.tools)


# ── Agent scope ────────────────────────────────────────────────────────────────


@router.get("/agent/{agent_id}", response_model=ToolStatusListResponse)
async def get_agent_tools(
    agent_id: str,
    session: AsyncSession = Depends(get_async_session),
    user: AuthUser = Depends(get_current_user),
):
    await AgentService(session).require_readable(agent_id, user.id)
    return await _list_with_status(session, Scope.AGENT, agent_id)


@router.post("/agent/{agent_id}", response_model=PreferenceWriteResponse)
async def set_agent_tool(
    agent_id: str,
    req: PreferenceItem,
    session: AsyncSession = Depends(get_async_session),
    user: AuthUser = Depends(get_current_user),
):
    await AgentService(session).require_owner(agent_id, user.id)
    return await _set_one(session, Scope.AGENT, agent_id, req)


@router.put("/agent/{agent_id}", response_model=PreferenceWriteResponse)
async def bulk_set_agent_tools(
    agent_id: str,
    req: BulkPreferenceRequest,
    session: AsyncSession = Depends(get_async_session),
    user: AuthUser = Depends(get_current_user),
):
    await AgentService(session).require_owner(agent_id, user.id)
    return await _set_bulk(session, Scope.AGENT, agent_id, req.tools)
