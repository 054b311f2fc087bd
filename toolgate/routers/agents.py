"""
Agent API

Endpoints:

  GET    /v1/agents                 caller's agents plus every global agent
  POST   /v1/agents                 create an agent owned by the caller
  GET    /v1/agents/{agent_id}      owner or global
  PATCH  /v1/agents/{agent_id}      owner only
  DELETE /v1/agents/{agent_id}      owner only; drops the agent's tool preferences

Only admins may create global agents.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from toolgate.auth.dependencies import AuthUser, get_current_user
from toolgate.database import get_async_session
from toolgate.errors import ForbiddenError
from toolgate.models.agent import Agent
from toolgate.services.agents import AgentService

router = APIRouter()


class AgentResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    system_prompt: str
    model_id: str
    user_id: Optional[str] = None
    is_global: bool
    is_owner: bool
    created_at: int
    updated_at: int


class AgentListResponse(BaseModel):
    agents: list[AgentResponse]


class AgentCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    system_prompt: str = ""
    model_id: str = Field(default="chat-model", max_length=50)
    is_global: bool = False


class AgentUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    system_prompt: Optional[str] = None
    model_id: Optional[str] = Field(default=None, max_length=50)
    is_global: Optional[bool] = None


def _agent_response(agent: Agent, user_id: str) -> AgentResponse:
    return AgentResponse(
        id=agent.id,
        name=agent.name,
        description=agent.description,
        system_prompt=agent.system_prompt,
        model_id=agent.model_id,
        user_id=agent.user_id,
        is_global=agent.is_global,
        is_owner=agent.is_owned_by(user_id),
        created_at=agent.created_at,
        updated_at=agent.updated_at,
    )


@router.get("", response_model=AgentListResponse)
async def list_agents(
    session: AsyncSession = Depends(get_async_session),
    user: AuthUser = Depends(get_current_user),
):
    agents = await AgentService(session).list_visible(user.id)
    return AgentListResponse(agents=[_agent_response(a, user.id) for a in agents])


@router.post("", response_model=AgentResponse, status_code=201)
async def create_agent(
    req: AgentCreateRequest,
    session: AsyncSession = Depends(get_async_session),
    user: AuthUser = Depends(get_current_user),
):
    if req.is_global and not user.is_admin:
        raise ForbiddenError("Only admins can create global agents")
    agent = await AgentService(session).create(
        user_id=user.id,
        name=req.name,
        description=req.description,
        system_prompt=req.system_prompt,
        model_id=req.model_id,
        is_global=req.is_global,
    )
    return _agent_response(agent, user.id)


@router.get("/{agent_id}", response_model=AgentResponse)
async def get_agent(
    agent_id: str,
    session: AsyncSession = Depends(get_async_session),
    user: AuthUser = Depends(get_current_user),
):
    agent = await AgentService(session).require_readable(agent_id, user.id)
    return _agent_response(agent, user.id)


@router.patch("/{agent_id}", response_model=AgentResponse)
async def update_agent(
    agent_id: str,
    req: AgentUpdateRequest,
    session: AsyncSession = Depends(get_async_session),
    user: AuthUser = Depends(get_current_user),
):
    if req.is_global and not user.is_admin:
        raise ForbiddenError("Only admins can make an agent global")
    agent = await AgentService(session).update(
        agent_id, user.id, **req.model_dump(exclude_unset=True)
    )
    return _agent_response(agent, user.id)


@router.delete("/{agent_id}")
async def delete_agent(
    agent_id: str,
    session: AsyncSession = Depends(get_async_session),
    user: AuthUser = Depends(get_current_user),
):
    await AgentService(session).delete(agent_id, user.id)
    return {"status": "deleted", "agent_id": agent_id}
