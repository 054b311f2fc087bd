"""initial_schema

Revision ID: 7c1f0a2b9d34
Revises:
Create Date: 2026-10-18 09:30:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '7c1f0a2b9d34'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Registry, agents and both preference tables."""
    op.create_table('available_tools',
        sa.Column('slug', sa.String(length=256), nullable=False),
        sa.Column('toolkit_slug', sa.String(length=128), nullable=False),
        sa.Column('toolkit_name', sa.String(length=128), nullable=False),
        sa.Column('display_name', sa.String(length=256), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.BigInteger(), nullable=False),
        sa.Column('updated_at', sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint('slug')
    )
    op.create_index('idx_available_tools_toolkit', 'available_tools', ['toolkit_name'], unique=False)

    op.create_table('agents',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('system_prompt', sa.Text(), nullable=False),
        sa.Column('model_id', sa.String(length=50), nullable=False),
        sa.Column('user_id', sa.String(length=255), nullable=True),
        sa.Column('is_global', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.BigInteger(), nullable=False),
        sa.Column('updated_at', sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_agents_user', 'agents', ['user_id'], unique=False)

    op.create_table('user_tool_preferences',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.String(length=255), nullable=False),
        sa.Column('tool_slug', sa.String(length=256), nullable=False),
        sa.Column('is_enabled', sa.Boolean(), nullable=False),
        sa.Column('updated_at', sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'tool_slug', name='uq_user_tool_preference')
    )
    op.create_index('idx_user_tool_preferences_user', 'user_tool_preferences', ['user_id'], unique=False)

    op.create_table('agent_tool_preferences',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('agent_id', sa.String(length=64), nullable=False),
        sa.Column('tool_slug', sa.String(length=256), nullable=False),
        sa.Column('is_enabled', sa.Boolean(), nullable=False),
        sa.Column('updated_at', sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('agent_id', 'tool_slug', name='uq_agent_tool_preference')
    )
    op.create_index('idx_agent_tool_preferences_agent', 'agent_tool_preferences', ['agent_id'], unique=False)


def downgrade() -> None:
    op.drop_index('idx_agent_tool_preferences_agent', table_name='agent_tool_preferences')
    op.drop_table('agent_tool_preferences')
    op.drop_index('idx_user_tool_preferences_user', table_name='user_tool_preferences')
    op.drop_table('user_tool_preferences')
    op.drop_index('idx_agents_user', table_name='agents')
    op.drop_table('agents')
    op.drop_index('idx_available_tools_toolkit', table_name='available_tools')
    op.drop_table('available_tools')
