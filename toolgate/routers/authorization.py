"""
Tool Authorization API

Read-only answers to "may this tool run for this caller right now?".
A tool is callable when it is active, enabled in exactly one scope (the
agent's when ?agent_id is given, the user's otherwise) and the user holds
an ACTIVE connection to its toolkit.

Endpoints:

  GET    /v1/tools/callable?agent_id=&user_id=
      Every callable tool for the caller.

  GET    /v1/tools/{slug}/callable?agent_id=&user_id=
      The individual checks for one tool plus the combined verdict.
      Unknown tool -> 404.

?user_id= names the end user to answer for. Only service callers (the
engine internal token) may pass it; anyone else gets 403.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from toolgate.auth.dependencies import AuthUser, get_current_user
from toolgate.dependencies import get_authorization_facade
from toolgate.errors import ForbiddenError
from toolgate.services.authorization import AuthorizationFacade

router = APIRouter()


def _subject_user_id(user: AuthUser, user_id: Optional[str]) -> str:
    if user_id is None or user_id == user.id:
        return user.id
    if not user.is_service:
        raise ForbiddenError("Only service callers may query on behalf of another user")
    return user_id


class CallableToolResponse(BaseModel):
    slug: str
    toolkit_slug: str
    toolkit_name: str
    display_name: Optional[str] = None
    description: Optional[str] = None


class CallableToolListResponse(BaseModel):
    scope: str
    scope_id: str
    tools: list[CallableToolResponse]


class CallableCheckResponse(BaseModel):
    tool_slug: str
    toolkit_slug: str
    scope: str
    scope_id: str
    active: bool
    enabled: bool
    connected: bool
    callable: bool
    reason: Optional[str] = None


@router.get("/callable", response_model=CallableToolListResponse)
async def list_callable_tools(
    agent_id: Optional[str] = None,
    user_id: Optional[str] = None,
    facade: AuthorizationFacade = Depends(get_authorization_facade),
    user: AuthUser = Depends(get_current_user),
):
    subject_id = _subject_user_id(user, user_id)
    tools = await facade.callable_tools(subject_id, agent_id)
    return CallableToolListResponse(
        scope="agent" if agent_id else "user",
        scope_id=agent_id or subject_id,
        tools=[
            CallableToolResponse(
                slug=t.slug,
                toolkit_slug=t.toolkit_slug,
                toolkit_name=t.toolkit_name,
                display_name=t.display_name,
                description=t.description,
            )
            for t in tools
        ],
    )


@router.get("/{slug}/callable", response_model=CallableCheckResponse)
async def check_tool_callable(
    slug: str,
    agent_id: Optional[str] = None,
    user_id: Optional[str] = None,
    facade: AuthorizationFacade = Depends(get_authorization_facade),
    user: AuthUser = Depends(get_current_user),
):
    status = await facade.check(_subject_user_id(user, user_id), slug, agent_id)
    return CallableCheckResponse(
        tool_slug=status.tool_slug,
        toolkit_slug=status.toolkit_slug,
        scope=status.scope,
        scope_id=status.scope_id,
        active=status.active,
        enabled=status.enabled,
        connected=status.connected,
        callable=status.callable,
        reason=status.reason(),
    )
