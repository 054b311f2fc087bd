"""Agent (assistant persona) model."""

from typing import Optional

from sqlalchemy import String, Text, Boolean, Index
from sqlalchemy.orm import Mapped, mapped_column

from toolgate.models.base import Base, TimestampMixin


class Agent(TimestampMixin, Base):
    """A named assistant persona owned by one user.

    Global agents are readable by every user. They are mutable only by their
    owner; a global agent with no owner cannot be changed through the API.
    """

    __tablename__ = "agents"
    __table_args__ = (
        Index("idx_agents_user", "user_id"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    system_prompt: Mapped[str] = mapped_column(Text, nullable=False, default="")
    model_id: Mapped[str] = mapped_column(
        String(50), nullable=False, default="chat-model"
    )
    user_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    is_global: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def is_owned_by(self, user_id: str) -> bool:
        return self.user_id is not None and self.user_id == user_id

    def is_readable_by(self, user_id: str) -> bool:
        return self.is_global or self.is_owned_by(user_id)
