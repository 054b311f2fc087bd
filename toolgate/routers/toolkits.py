"""
Toolkit Enablement API

A toolkit is enabled for a scope when every one of its active tools is
enabled there; toggling a toolkit writes every tool in it.

Endpoints:

  GET    /v1/tools/user/toolkits
  GET    /v1/tools/agent/{agent_id}/toolkits
      Toolkits with tool_count, description and derived is_enabled.

  POST   /v1/tools/user/toolkits
  POST   /v1/tools/agent/{agent_id}/toolkits
      Body: {toolkit_name, enabled}.  Returns tools_affected (0 for an
      unknown toolkit).

  POST   /v1/tools/user/toolkits/bulk
  POST   /v1/tools/agent/{agent_id}/toolkits/bulk
      Body: {enabled}.  Applies to every toolkit.  Each toolkit commits on
      its own; a failure returns 500 with the toolkits already committed.

  POST   /v1/tools/agent/{agent_id}/toolkits/copy
      Body: {toolkit_names?}.  Enables the named toolkits on the agent.
      When toolkit_names is omitted, the caller's currently enabled user
      toolkits are copied.  Never disables anything.
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from toolgate.auth.dependencies import AuthUser, get_current_user
from toolgate.database import get_async_session
from toolgate.logging_config import get_logger
from toolgate.services.agents import AgentService
from toolgate.services.preferences import Scope
from toolgate.services.toolkits import BulkToolkitResult, ToolkitAggregator

logger = get_logger(__name__)

router = APIRouter()


# ── Pydantic schemas ───────────────────────────────────────────────────────────


class ToolkitResponse(BaseModel):
    toolkit_name: str
    toolkit_slug: str
    tool_count: int
    description: Optional[str] = None
    is_enabled: bool


class ToolkitListResponse(BaseModel):
    toolkits: list[ToolkitResponse]


class ToolkitToggleRequest(BaseModel):
    toolkit_name: str = Field(min_length=1)
    enabled: bool


class ToolkitToggleResponse(BaseModel):
    success: bool = True
    toolkit_name: str
    tools_affected: int
    message: str


class BulkToggleRequest(BaseModel):
    enabled: bool


class ToolkitWriteResponse(BaseModel):
    toolkit_name: str
    tools_affected: int


class BulkToolkitResponse(BaseModel):
    success: bool = True
    total_tools_affected: int
    per_toolkit: list[ToolkitWriteResponse]
    message: str


class CopyToolkitsRequest(BaseModel):
    # Non-string or empty names are ignored
    toolkit_names: Optional[list[Any]] = None


# ── Shared logic ───────────────────────────────────────────────────────────────


async def _list(session: AsyncSession, scope: Scope, scope_id: str) -> ToolkitListResponse:
    statuses = await ToolkitAggregator(session).list_with_status(scope, scope_id)
    return ToolkitListResponse(
        toolkits=[
            ToolkitResponse(
                toolkit_name=s.toolkit_name,
                toolkit_slug=s.toolkit_slug,
                tool_count=s.tool_count,
                description=s.description,
                is_enabled=s.is_enabled,
            )
            for s in statuses
        ]
    )


async def _toggle(
    session: AsyncSession, scope: Scope, scope_id: str, req: ToolkitToggleRequest
) -> ToolkitToggleResponse:
    affected = await ToolkitAggregator(session).set_toolkit_enabled(
        scope, scope_id, req.toolkit_name, req.enabled
    )
    verb = "Enabled" if req.enabled else "Disabled"
    logger.info(f"{verb} {affected} tools in {req.toolkit_name} for {scope.value} {scope_id}")
    return ToolkitToggleResponse(
        toolkit_name=req.toolkit_name,
        tools_affected=affected,
        message=f"{verb} {affected} tools in {req.toolkit_name} toolkit",
    )


def _bulk_response(result: BulkToolkitResult, verb: str) -> BulkToolkitResponse:
    return BulkToolkitResponse(
        total_tools_affected=result.total_tools_affected,
        per_toolkit=[
            ToolkitWriteResponse(toolkit_name=w.toolkit_name, tools_affected=w.tools_affected)
            for w in result.per_toolkit
        ],
        message=(
            f"{verb} {result.total_tools_affected} tools across "
            f"{len(result.per_toolkit)} toolkits"
        ),
    )


# ── User scope ─────────────────────────────────────────────────────────────────


@router.get("/user/toolkits", response_model=ToolkitListResponse)
async def get_user_toolkits(
    session: AsyncSession = Depends(get_async_session),
    user: AuthUser = Depends(get_current_user),
):
    return await _list(session, Scope.USER, user.id)


@router.post("/user/toolkits", response_model=ToolkitToggleResponse)
async def set_user_toolkit(
    req: ToolkitToggleRequest,
    session: AsyncSession = Depends(get_async_session),
    user: AuthUser = Depends(get_current_user),
):
    return await _toggle(session, Scope.USER, user.id, req)


@router.post("/user/toolkits/bulk", response_model=BulkToolkitResponse)
async def bulk_set_user_toolkits(
    req: BulkToggleRequest,
    session: AsyncSession = Depends(get_async_session),
    user: AuthUser = Depends(get_current_user),
):
    result = await ToolkitAggregator(session).bulk_set_all(Scope.USER, user.id, req.enabled)
    return _bulk_response(result, "Enabled" if req.enabled else "Disabled")


# ── Agent scope ────────────────────────────────────────────────────────────────


@router.get("/agent/{agent_id}/toolkits", response_model=ToolkitListResponse)
async def get_agent_toolkits(
    agent_id: str,
    session: AsyncSession = Depends(get_async_session),
    user: AuthUser = Depends(get_current_user),
):
    await AgentService(session).require_readable(agent_id, user.id)
    return await _list(session, Scope.AGENT, agent_id)


@router.post("/agent/{agent_id}/toolkits", response_model=ToolkitToggleResponse)
async def set_agent_toolkit(
    agent_id: str,
    req: ToolkitToggleRequest,
    session: AsyncSession = Depends(get_async_session),
    user: AuthUser = Depends(get_current_user),
):
    await AgentService(session).require_owner(agent_id, user.id)
    return await _toggle(session, Scope.AGENT, agent_id, req)


@router.post("/agent/{agent_id}/toolkits/bulk", response_model=BulkToolkitResponse)
async def bulk_set_agent_toolkits(
    agent_id: str,
    req: BulkToggleRequest,
    session: AsyncSession = Depends(get_async_session),
    user: AuthUser = Depends(get_current_user),
):
    await AgentService(session).require_owner(agent_id, user.id)
    result = await ToolkitAggregator(session).bulk_set_all(Scope.AGENT, agent_id, req.enabled)
    return _bulk_response(result, "Enabled" if req.enabled else "Disabled")


@router.post("/agent/{agent_id}/toolkits/copy", response_model=BulkToolkitResponse)
async def copy_toolkits_to_agent(
    agent_id: str,
    req: CopyToolkitsRequest,
    session: AsyncSession = Depends(get_async_session),
    user: AuthUser = Depends(get_current_user),
):
    """One-time copy of a toolkit selection into the agent scope."""
    await AgentService(session).require_owner(agent_id, user.id)
    aggregator = ToolkitAggregator(session)

    names = req.toolkit_names
    if names is None:
        names = await aggregator.enabled_toolkit_names(Scope.USER, user.id)

    result = await aggregator.copy_selection(agent_id, names)
    return _bulk_response(result, "Enabled")
