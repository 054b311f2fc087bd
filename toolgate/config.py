"""Service configuration: reads from environment variables."""

import os
from dataclasses import dataclass, field
from typing import Optional


def _csv_env(name: str, default: str) -> list[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass
class Settings:
    """Provider platform and toolkit settings read from env vars at import time."""

    # Provider platform (Composio-compatible REST API)
    provider_api_key: str = field(
        default_factory=lambda: os.getenv("COMPOSIO_API_KEY", "")
    )
    provider_base_url: str = field(
        default_factory=lambda: os.getenv(
            "COMPOSIO_BASE_URL", "https://backend.composio.dev/api/v3"
        )
    )
    provider_timeout_seconds: float = field(
        default_factory=lambda: float(os.getenv("PROVIDER_TIMEOUT", "30"))
    )

    # Toolkits that may be connected with a server-held key instead of a
    # user-supplied one. The key itself is read from <TOOLKIT>_API_KEY.
    auto_connect_toolkits: list[str] = field(
        default_factory=lambda: [
            t.lower() for t in _csv_env("AUTO_CONNECT_TOOLKITS", "apify")
        ]
    )

    # Toolkits shown in the connection catalog
    supported_toolkits: list[str] = field(
        default_factory=lambda: [
            t.upper() for t in _csv_env("SUPPORTED_TOOLKITS", "GMAIL,TWITTER,MAILCHIMP")
        ]
    )

    redis_url: str = field(
        default_factory=lambda: os.getenv("REDIS_URL", "redis://localhost:6379")
    )

    def fallback_api_key(self, toolkit_slug: str) -> Optional[str]:
        """Return the server-held API key for a toolkit, if one is configured."""
        slug = toolkit_slug.lower()
        if slug not in self.auto_connect_toolkits:
            return None
        return os.getenv(f"{slug.upper()}_API_KEY") or None


# Singleton: imported everywhere.
settings = Settings()
