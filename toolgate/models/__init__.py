"""SQLAlchemy ORM models for toolgate."""

from toolgate.models.base import Base, TimestampMixin
from toolgate.models.tool import AvailableTool
from toolgate.models.preference import UserToolPreference, AgentToolPreference
from toolgate.models.agent import Agent

__all__ = [
    "Base",
    "TimestampMixin",
    "AvailableTool",
    "UserToolPreference",
    "AgentToolPreference",
    "Agent",
]
