"""
Available Tool Registry API

Endpoints:

  GET    /v1/tools/available
      Every registered tool, ordered by display name then slug.
      Inactive tools are hidden unless ?include_inactive=true.

  POST   /v1/tools/available                (admin)
      Register a tool. 409 if the slug already exists.

  PUT    /v1/tools/available/{slug}         (admin)
      Update display_name / description / is_active.

  DELETE /v1/tools/available/{slug}         (admin)
      Remove the tool and every user and agent preference row for it.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from toolgate.auth.dependencies import AuthUser, get_current_admin, get_current_user
from toolgate.database import get_async_session
from toolgate.models.tool import AvailableTool
from toolgate.services.registry import ToolRegistry

router = APIRouter()


# ── Pydantic schemas ───────────────────────────────────────────────────────────


class ToolResponse(BaseModel):
    slug: str
    toolkit_slug: str
    toolkit_name: str
    display_name: Optional[str] = None
    description: Optional[str] = None
    is_active: bool
    created_at: int
    updated_at: int


class ToolListResponse(BaseModel):
    tools: list[ToolResponse]


class ToolCreateRequest(BaseModel):
    slug: str = Field(min_length=1, max_length=256)
    toolkit_slug: str = Field(min_length=1, max_length=128)
    toolkit_name: str = Field(min_length=1, max_length=128)
    display_name: Optional[str] = None
    description: Optional[str] = None
    is_active: bool = True


class ToolUpdateRequest(BaseModel):
    display_name: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None


def _tool_response(tool: AvailableTool) -> ToolResponse:
    return ToolResponse(
        slug=tool.slug,
        toolkit_slug=tool.toolkit_slug,
        toolkit_name=tool.toolkit_name,
        display_name=tool.display_name,
        description=tool.description,
        is_active=tool.is_active,
        created_at=tool.created_at,
        updated_at=tool.updated_at,
    )


# ── Endpoints ──────────────────────────────────────────────────────────────────


@router.get("/available", response_model=ToolListResponse)
async def list_available_tools(
    include_inactive: bool = False,
    session: AsyncSession = Depends(get_async_session),
    user: AuthUser = Depends(get_current_user),
):
    tools = await ToolRegistry(session).list(include_inactive=include_inactive)
    return ToolListResponse(tools=[_tool_response(t) for t in tools])


@router.post("/available", response_model=ToolResponse, status_code=201)
async def create_available_tool(
    req: ToolCreateRequest,
    session: AsyncSession = Depends(get_async_session),
    admin: AuthUser = Depends(get_current_admin),
):
    tool = await ToolRegistry(session).add(
        slug=req.slug,
        toolkit_slug=req.toolkit_slug,
        toolkit_name=req.toolkit_name,
        display_name=req.display_name,
        description=req.description,
        is_active=req.is_active,
    )
    return _tool_response(tool)


@router.put("/available/{slug}", response_model=ToolResponse)
async def update_available_tool(
    slug: str,
    req: ToolUpdateRequest,
    session: AsyncSession = Depends(get_async_session),
    admin: AuthUser = Depends(get_current_admin),
):
    tool = await ToolRegistry(session).update(slug, **req.model_dump(exclude_unset=True))
    return _tool_response(tool)


@router.delete("/available/{slug}")
async def delete_available_tool(
    slug: str,
    session: AsyncSession = Depends(get_async_session),
    admin: AuthUser = Depends(get_current_admin),
):
    """Delete a tool; preference rows referencing it go with it."""
    await ToolRegistry(session).delete(slug)
    return {"status": "deleted", "slug": slug}
