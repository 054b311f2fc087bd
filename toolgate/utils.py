"""Shared utility functions."""
import uuid
from datetime import datetime, timezone


def now_ms() -> int:
    """Current timestamp in milliseconds since epoch."""
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def gen_uuid() -> str:
    """Generate a random UUID string for new records."""
    return str(uuid.uuid4())


def is_uuid(value: str) -> bool:
    """Return True when ``value`` parses as a UUID."""
    try:
        uuid.UUID(str(value))
    except (ValueError, TypeError, AttributeError):
        return False
    return True
