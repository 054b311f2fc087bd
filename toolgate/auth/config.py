"""Auth configuration: reads from environment variables."""

import os
from dataclasses import dataclass, field


@dataclass
class AuthSettings:
    """Centralised auth configuration read from env vars at import time."""

    # Master toggle - when False every request runs as a synthetic admin.
    enabled: bool = field(
        default_factory=lambda: os.getenv("AUTH_ENABLED", "true").lower() == "true"
    )

    # Shared secret the identity provider signs access tokens with (HS256).
    secret_key: str = field(default_factory=lambda: os.getenv("AUTH_SECRET_KEY", ""))

    # Expected "iss" claim; empty disables the issuer check.
    issuer: str = field(default_factory=lambda: os.getenv("AUTH_ISSUER", ""))

    # Comma-separated user ids with admin rights (registry mutations).
    admin_user_ids: list[str] = field(
        default_factory=lambda: [
            u.strip() for u in os.getenv("ADMIN_USER_IDS", "").split(",") if u.strip()
        ]
    )

    # Pre-shared token for the model runtime (service-to-service calls).
    engine_internal_token: str = field(
        default_factory=lambda: os.getenv("ENGINE_INTERNAL_TOKEN", "")
    )

    def validate(self) -> None:
        """Raise if critical settings are missing while auth is enabled."""
        if not self.enabled:
            return
        if not self.secret_key:
            raise RuntimeError(
                "AUTH_SECRET_KEY must be set when AUTH_ENABLED=true. "
                "Use the signing secret configured on the identity provider."
            )
        if not self.engine_internal_token:
            raise RuntimeError(
                "ENGINE_INTERNAL_TOKEN must be set when AUTH_ENABLED=true. "
                "The model runtime needs this token to query tool availability. "
                'Generate one with: python -c "import secrets; print(secrets.token_urlsafe(32))"'
            )


# Singleton - imported everywhere.
auth_settings = AuthSettings()
