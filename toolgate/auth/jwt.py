"""JWT validation for identity-provider access tokens."""

from datetime import datetime, timezone, timedelta
from typing import Optional

import jwt as pyjwt

from toolgate.auth.config import auth_settings


def decode_token(token: str) -> dict:
    """Decode and validate a JWT.

    Raises jwt.ExpiredSignatureError, jwt.InvalidTokenError on failure.
    """
    options = {"require": ["sub", "exp"]}
    if auth_settings.issuer:
        return pyjwt.decode(
            token,
            auth_settings.secret_key,
            algorithms=["HS256"],
            issuer=auth_settings.issuer,
            options=options,
        )
    return pyjwt.decode(
        token, auth_settings.secret_key, algorithms=["HS256"], options=options
    )


def create_access_token(
    user_id: str,
    ttl_seconds: int = 900,
    extra_claims: Optional[dict] = None,
) -> str:
    """Mint a token the way the identity provider does (used by tests and the CLI)."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "iat": now,
        "exp": now + timedelta(seconds=ttl_seconds),
    }
    if auth_settings.issuer:
        payload["iss"] = auth_settings.issuer
    if extra_claims:
        payload.update(extra_claims)
    return pyjwt.encode(payload, auth_settings.secret_key, algorithm="HS256")
