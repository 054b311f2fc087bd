"""
Connection API

Manages the caller's provider connections (credentials linking them to a
toolkit).  Only ACTIVE connections make a toolkit's tools callable.

Endpoints:

  POST   /v1/connections/initiate
      Body: {auth_config_id, credential_fields?}.  Dispatches on the auth
      config's scheme: API_KEY connects synchronously, anything else
      returns a redirect_url for the user to complete.

  POST   /v1/connections/api-key
      Body: {auth_config_id, api_key?, api_url?, extra_fields?}.

  POST   /v1/connections/auto/{toolkit_slug}
      Connect using the server-held key for the toolkit, if configured.

  GET    /v1/connections?active_only=
  GET    /v1/connections/status?connection_id=
  GET    /v1/connections/toolkits
  DELETE /v1/connections?connection_id=

Connecting a toolkit that already has an ACTIVE connection returns that
connection with is_existing=true instead of creating another.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from toolgate.auth.dependencies import AuthUser, get_current_user
from toolgate.dependencies import get_connection_engine
from toolgate.services.connections import ConnectionEngine, ConnectionResult

router = APIRouter()


# ── Pydantic schemas ───────────────────────────────────────────────────────────


class InitiateRequest(BaseModel):
    auth_config_id: str = Field(min_length=1)
    credential_fields: Optional[dict[str, str]] = None


class ApiKeyRequest(BaseModel):
    auth_config_id: str = Field(min_length=1)
    api_key: Optional[str] = None
    api_url: Optional[str] = None
    extra_fields: Optional[dict[str, str]] = None


class ConnectionResultResponse(BaseModel):
    success: bool = True
    connection_id: str
    status: str
    toolkit_slug: str
    redirect_url: Optional[str] = None
    is_existing: bool = False


class ConnectionSummaryResponse(BaseModel):
    toolkit: str
    connection_id: str
    status: str


class ConnectionListResponse(BaseModel):
    connections: list[ConnectionSummaryResponse]
    total_connections: int


class ConnectionStatusResponse(BaseModel):
    connection_id: str
    status: str
    toolkit_slug: str
    auth_config_id: Optional[str] = None


class ToolkitCatalogResponse(BaseModel):
    slug: str
    name: str
    description: Optional[str] = None
    logo: Optional[str] = None
    categories: list[dict] = []
    is_connected: bool
    connection_id: Optional[str] = None


class ToolkitCatalogListResponse(BaseModel):
    toolkits: list[ToolkitCatalogResponse]


def _result_response(result: ConnectionResult) -> ConnectionResultResponse:
    return ConnectionResultResponse(
        connection_id=result.connection_id,
        status=result.status,
        toolkit_slug=result.toolkit_slug,
        redirect_url=result.redirect_url,
        is_existing=result.is_existing,
    )


# ── Endpoints ──────────────────────────────────────────────────────────────────


@router.post("/initiate", response_model=ConnectionResultResponse)
async def initiate_connection(
    req: InitiateRequest,
    engine: ConnectionEngine = Depends(get_connection_engine),
    user: AuthUser = Depends(get_current_user),
):
    result = await engine.initiate(user.id, req.auth_config_id, req.credential_fields)
    return _result_response(result)


@router.post("/api-key", response_model=ConnectionResultResponse)
async def connect_with_api_key(
    req: ApiKeyRequest,
    engine: ConnectionEngine = Depends(get_connection_engine),
    user: AuthUser = Depends(get_current_user),
):
    extra = dict(req.extra_fields or {})
    if req.api_url:
        extra["api_url"] = req.api_url
    result = await engine.initiate_api_key(
        user.id, req.auth_config_id, api_key=req.api_key, extra_fields=extra
    )
    return _result_response(result)


@router.post("/auto/{toolkit_slug}", response_model=ConnectionResultResponse)
async def auto_connect_toolkit(
    toolkit_slug: str,
    engine: ConnectionEngine = Depends(get_connection_engine),
    user: AuthUser = Depends(get_current_user),
):
    result = await engine.auto_connect(user.id, toolkit_slug)
    return _result_response(result)


@router.get("", response_model=ConnectionListResponse)
async def list_connections(
    active_only: bool = False,
    engine: ConnectionEngine = Depends(get_connection_engine),
    user: AuthUser = Depends(get_current_user),
):
    summaries = await engine.list(user.id, active_only=active_only)
    return ConnectionListResponse(
        connections=[
            ConnectionSummaryResponse(
                toolkit=s.toolkit, connection_id=s.connection_id, status=s.status
            )
            for s in summaries
        ],
        total_connections=len(summaries),
    )


@router.get("/status", response_model=ConnectionStatusResponse)
async def connection_status(
    connection_id: str = Query(min_length=1),
    engine: ConnectionEngine = Depends(get_connection_engine),
    user: AuthUser = Depends(get_current_user),
):
    """Current state only; callers poll until the state is terminal."""
    account = await engine.status(connection_id, user.id)
    return ConnectionStatusResponse(
        connection_id=account.id,
        status=account.status,
        toolkit_slug=account.toolkit_slug,
        auth_config_id=account.auth_config_id,
    )


@router.get("/toolkits", response_model=ToolkitCatalogListResponse)
async def list_supported_toolkits(
    engine: ConnectionEngine = Depends(get_connection_engine),
    user: AuthUser = Depends(get_current_user),
):
    entries = await engine.catalog(user.id)
    return ToolkitCatalogListResponse(
        toolkits=[
            ToolkitCatalogResponse(
                slug=e.slug,
                name=e.name,
                description=e.description,
                logo=e.logo,
                categories=e.categories,
                is_connected=e.is_connected,
                connection_id=e.connection_id,
            )
            for e in entries
        ]
    )


@router.delete("")
async def delete_connection(
    connection_id: str = Query(min_length=1),
    engine: ConnectionEngine = Depends(get_connection_engine),
    user: AuthUser = Depends(get_current_user),
):
    await engine.revoke(connection_id, user.id)
    return {"success": True, "message": "Connection deleted successfully"}
