"""Available tool registry model.

A single table: available_tools

Each row is one provider tool (e.g. ``GMAIL_SEND_EMAIL``) tagged with the
toolkit it belongs to. Toolkits are not stored; they are the group-by of this
table over (toolkit_name, toolkit_slug).
"""

from typing import Optional

from sqlalchemy import String, Text, Boolean, Index
from sqlalchemy.orm import Mapped, mapped_column

from toolgate.models.base import Base, TimestampMixin


class AvailableTool(TimestampMixin, Base):
    """A tool that could ever be enabled for a user or agent."""

    __tablename__ = "available_tools"
    __table_args__ = (
        Index("idx_available_tools_toolkit", "toolkit_name"),
    )

    # Provider-assigned slug, stable and globally unique
    slug: Mapped[str] = mapped_column(String(256), primary_key=True)
    toolkit_slug: Mapped[str] = mapped_column(String(128), nullable=False)
    toolkit_name: Mapped[str] = mapped_column(String(128), nullable=False)
    display_name: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # Inactive tools stay registered but are hidden and never callable
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
