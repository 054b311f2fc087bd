"""Change broadcasts for running model runtimes.

Runtimes subscribe to these Redis channels to drop their cached tool lists
and pick up changes on the next turn. Publishing is best-effort: a failure
is logged and the write that triggered it still succeeds.
"""

import json

from toolgate import dependencies
from toolgate.logging_config import get_logger
from toolgate.utils import now_ms

logger = get_logger(__name__)

PREFERENCES_CHANGED_CHANNEL = "toolgate:tools:preferences-changed"
REGISTRY_CHANGED_CHANNEL = "toolgate:tools:registry-changed"


async def _publish(channel: str, payload: dict) -> None:
    if not dependencies.redis_client:
        return
    payload["timestamp"] = now_ms()
    try:
        await dependencies.redis_client.publish(channel, json.dumps(payload))
    except Exception as e:
        logger.warning(f"Failed to publish to {channel}: {e}")


async def publish_preferences_changed(scope: str, scope_id: str) -> None:
    """Notify runtimes that tool enablement changed for a user or agent."""
    await _publish(PREFERENCES_CHANGED_CHANNEL, {"scope": scope, "scope_id": scope_id})


async def publish_registry_changed(action: str, tool_slug: str) -> None:
    """Notify runtimes that the tool registry changed."""
    await _publish(REGISTRY_CHANGED_CHANNEL, {"action": action, "tool_slug": tool_slug})
