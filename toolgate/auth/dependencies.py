"""FastAPI authentication dependencies.

  get_current_user  : requires a valid identity-provider JWT or the engine
                       internal token
  get_current_admin : same as above + user must be admin
"""

import hmac
from dataclasses import dataclass
from typing import Optional

import jwt as pyjwt
from fastapi import Depends, HTTPException, Request, status

from toolgate.auth.config import auth_settings
from toolgate.auth.jwt import decode_token
from toolgate.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class AuthUser:
    """The authenticated caller: real user or service identity."""

    id: str
    is_admin: bool = False
    is_service: bool = False

    @staticmethod
    def service_user() -> "AuthUser":
        """Synthetic user for ENGINE_INTERNAL_TOKEN callers."""
        return AuthUser(id="service:engine", is_admin=True, is_service=True)


def _extract_bearer_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("authorization")
    if auth_header and auth_header.lower().startswith("bearer "):
        return auth_header[7:].strip()
    return None


def _is_engine_internal_token(token: str) -> bool:
    """Constant-time comparison against ENGINE_INTERNAL_TOKEN."""
    if not auth_settings.engine_internal_token:
        return False
    return hmac.compare_digest(token, auth_settings.engine_internal_token)


def _resolve_jwt(token: str) -> AuthUser:
    try:
        payload = decode_token(token)
    except pyjwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except pyjwt.InvalidTokenError as e:
        logger.debug(f"Rejected bearer token: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload["sub"]
    return AuthUser(
        id=user_id,
        is_admin=bool(payload.get("is_admin")) or user_id in auth_settings.admin_user_ids,
    )


async def get_current_user(request: Request) -> AuthUser:
    """Resolve the current user. Raises 401 if no valid credential is provided."""
    if not auth_settings.enabled:
        return AuthUser(id="anonymous", is_admin=True)

    token = _extract_bearer_token(request)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if _is_engine_internal_token(token):
        return AuthUser.service_user()

    return _resolve_jwt(token)


async def get_current_admin(
    user: AuthUser = Depends(get_current_user),
) -> AuthUser:
    """Require an admin user."""
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user
