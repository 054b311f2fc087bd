import os
from contextlib import asynccontextmanager

import redis.asyncio as redis
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from toolgate import __version__, dependencies
from toolgate.config import settings
from toolgate.database import AsyncSessionLocal, close_db_engine, init_db_engine
from toolgate.errors import ToolgateError
from toolgate.logging_config import get_logger, setup_logging
from toolgate.migration_check import ensure_migrations
from toolgate.providers.composio import ComposioClient
from toolgate.routers import (
    agents,
    authorization,
    connections,
    preferences,
    toolkits,
    tools,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan - connect/disconnect Redis, database and provider."""
    # Initialize logging first
    setup_logging()

    # Validate auth configuration
    from toolgate.auth.config import auth_settings

    try:
        auth_settings.validate()
        if auth_settings.enabled:
            logger.info("Authentication is ENABLED")
        else:
            logger.warning("Authentication is DISABLED (AUTH_ENABLED=false)")
    except RuntimeError as e:
        logger.critical(f"Auth configuration error: {e}")
        raise

    dependencies.redis_client = redis.from_url(
        settings.redis_url,
        decode_responses=True,
        socket_connect_timeout=5,
        socket_keepalive=True,
        retry_on_timeout=True,
        health_check_interval=30,
    )

    try:
        await dependencies.redis_client.ping()
        logger.info(f"Connected to Redis at {settings.redis_url}")
    except Exception as e:
        logger.warning(f"Could not connect to Redis: {e}")
        logger.warning("Tool change broadcasts will be dropped until Redis is reachable")

    # Initialize async database engine
    try:
        await init_db_engine()
        logger.info("Database engine initialized")
    except Exception as e:
        logger.critical(f"Could not initialize database engine: {e}")
        raise

    # Verify database migrations are applied
    try:
        ensure_migrations()
    except Exception as e:
        logger.critical(f"Migration check failed: {e}")
        raise

    if settings.provider_api_key:
        dependencies.provider_client = ComposioClient(
            api_key=settings.provider_api_key,
            base_url=settings.provider_base_url,
            timeout=settings.provider_timeout_seconds,
        )
        logger.info(f"Provider platform client configured for {settings.provider_base_url}")
    else:
        logger.warning(
            "COMPOSIO_API_KEY is not set; connection endpoints will return 503"
        )

    yield

    if dependencies.provider_client:
        try:
            await dependencies.provider_client.close()
        except Exception as e:
            logger.error(f"Error closing provider client: {e}")
        dependencies.provider_client = None

    # Close async database engine
    try:
        await close_db_engine()
        logger.info("Database engine closed")
    except Exception as e:
        logger.error(f"Error closing database engine: {e}")

    if dependencies.redis_client:
        try:
            await dependencies.redis_client.close()
            logger.info("Disconnected from Redis")
        except Exception as e:
            logger.error(f"Error closing Redis connection: {e}")


app = FastAPI(
    title="toolgate API",
    version=__version__,
    description="Tool enablement and connection authorization for chat assistants",
    lifespan=lifespan,
)

# CORS
# CORS_ORIGINS env var controls allowed origins.
#   "*" or unset         -> wildcard (credentials disabled)
#   "http://a,https://b" -> explicit origin list (credentials enabled)
_cors_origins_env = os.getenv("CORS_ORIGINS", "*").strip()
if _cors_origins_env == "*":
    _cors_origins = ["*"]
    _cors_credentials = False
else:
    _cors_origins = [o.strip() for o in _cors_origins_env.split(",") if o.strip()]
    _cors_credentials = True

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=_cors_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ToolgateError)
async def toolgate_exception_handler(request: Request, exc: ToolgateError):
    """Translate domain errors raised by services into JSON responses."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(
            f"{request.method} {request.url.path} -> {exc.status_code} {exc.code}: {exc.message}"
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch unhandled exceptions and return proper JSON response."""
    error_detail = str(exc)
    error_type = type(exc).__name__

    # Log the full traceback
    logger.error(
        f"Unhandled exception in {request.method} {request.url.path}: {error_type}: {error_detail}",
        exc_info=True,
    )

    return JSONResponse(
        status_code=500,
        content={
            "detail": f"{error_type}: {error_detail}",
            "code": "internal",
            "path": str(request.url.path),
        },
    )


app.include_router(tools.router, prefix="/v1/tools", tags=["tools"])
app.include_router(preferences.router, prefix="/v1/tools", tags=["tool-preferences"])
app.include_router(toolkits.router, prefix="/v1/tools", tags=["toolkits"])
app.include_router(authorization.router, prefix="/v1/tools", tags=["authorization"])
app.include_router(connections.router, prefix="/v1/connections", tags=["connections"])
app.include_router(agents.router, prefix="/v1/agents", tags=["agents"])


@app.get("/v1/status")
async def status():
    """Get API health status."""
    redis_ok = False
    if dependencies.redis_client:
        try:
            redis_ok = await dependencies.redis_client.ping()
        except Exception as e:
            logger.debug(f"Redis ping failed: {e}")

    database_ok = False
    try:
        async with AsyncSessionLocal() as session:
            await session.execute(text("SELECT 1"))
        database_ok = True
    except Exception as e:
        logger.warning(f"Database health check failed: {e}")

    return {
        "status": "ok" if database_ok else "degraded",
        "version": __version__,
        "database": database_ok,
        "redis": bool(redis_ok),
        "provider_configured": dependencies.provider_client is not None,
    }
