"""FastAPI dependencies for the toolgate API."""
import redis.asyncio as redis
from fastapi import Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from toolgate.database import get_async_session
from toolgate.providers import ProviderPlatform

# Global Redis client (initialized in main.py lifespan)
redis_client: redis.Redis | None = None

# Global provider platform client (initialized in main.py lifespan)
provider_client: ProviderPlatform | None = None


def get_provider() -> ProviderPlatform:
    """Return the provider platform client; 503 if it is not configured."""
    if provider_client is None:
        raise HTTPException(
            status_code=503, detail="Provider platform not configured"
        )
    return provider_client


def get_connection_engine(provider: ProviderPlatform = Depends(get_provider)):
    from toolgate.services.connections import ConnectionEngine

    return ConnectionEngine(provider)


def get_authorization_facade(
    session: AsyncSession = Depends(get_async_session),
    provider: ProviderPlatform = Depends(get_provider),
):
    from toolgate.services.authorization import AuthorizationFacade
    from toolgate.services.connections import ConnectionEngine

    return AuthorizationFacade(session, ConnectionEngine(provider))
