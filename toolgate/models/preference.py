"""Tool preference models.

Two tables with the same shape:

  user_tool_preferences   (user_id, tool_slug)  -> is_enabled
  agent_tool_preferences  (agent_id, tool_slug) -> is_enabled

Enablement is opt-in: the absence of a row means the tool is NOT enabled.
Rows are created on the first explicit toggle and overwritten afterwards.
The unique constraint on (scope id, tool_slug) is what upserts target.
"""

from sqlalchemy import String, Boolean, BigInteger, Integer, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from toolgate.models.base import Base


class UserToolPreference(Base):
    """User-scope enablement of one tool (default for all of a user's chats)."""

    __tablename__ = "user_tool_preferences"
    __table_args__ = (
        UniqueConstraint("user_id", "tool_slug", name="uq_user_tool_preference"),
        Index("idx_user_tool_preferences_user", "user_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    tool_slug: Mapped[str] = mapped_column(String(256), nullable=False)
    is_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    updated_at: Mapped[int] = mapped_column(BigInteger, nullable=False)


class AgentToolPreference(Base):
    """Agent-scope enablement of one tool.

    Independent of the owner's user-scope rows: an agent starts with no
    tools enabled and only changes through its own toggles or an explicit
    copy of the owner's toolkits.
    """

    __tablename__ = "agent_tool_preferences"
    __table_args__ = (
        UniqueConstraint("agent_id", "tool_slug", name="uq_agent_tool_preference"),
        Index("idx_agent_tool_preferences_agent", "agent_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    agent_id: Mapped[str] = mapped_column(String(64), nullable=False)
    tool_slug: Mapped[str] = mapped_column(String(256), nullable=False)
    is_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    updated_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
