"""Agent store with ownership checks.

Ownership is read from the database on every call and never cached: a
mutating call always re-verifies that the caller owns the agent before any
write happens.
"""

from typing import Optional

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from toolgate.errors import BadRequestError, ForbiddenError, NotFoundError
from toolgate.logging_config import get_logger
from toolgate.models.agent import Agent
from toolgate.services.preferences import PreferenceStore, Scope
from toolgate.utils import gen_uuid, is_uuid, now_ms

logger = get_logger(__name__)

UPDATABLE_FIELDS = ("name", "description", "system_prompt", "model_id", "is_global")


def validate_agent_id(agent_id: str) -> str:
    if not is_uuid(agent_id):
        raise BadRequestError(f"Invalid agent id: {agent_id}")
    return agent_id


class AgentService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, agent_id: str) -> Agent:
        validate_agent_id(agent_id)
        result = await self.session.execute(select(Agent).where(Agent.id == agent_id))
        agent = result.scalar_one_or_none()
        if agent is None:
            raise NotFoundError("Agent not found")
        return agent

    async def require_readable(self, agent_id: str, user_id: str) -> Agent:
        """Return the agent if the user owns it or it is global."""
        agent = await self.get(agent_id)
        if not agent.is_readable_by(user_id):
            raise ForbiddenError("Access denied to this agent")
        return agent

    async def require_owner(self, agent_id: str, user_id: str) -> Agent:
        """Return the agent if the user owns it; global agents are no exception."""
        agent = await self.get(agent_id)
        if not agent.is_owned_by(user_id):
            logger.warning(f"User {user_id} attempted to modify agent {agent_id}")
            raise ForbiddenError("Only the agent owner can modify this agent")
        return agent

    async def list_visible(self, user_id: str) -> list[Agent]:
        """The user's own agents plus every global agent, newest first."""
        result = await self.session.execute(
            select(Agent)
            .where(or_(Agent.user_id == user_id, Agent.is_global == True))  # noqa: E712
            .order_by(Agent.created_at.desc())
        )
        return list(result.scalars().all())

    async def create(
        self,
        user_id: Optional[str],
        name: str,
        description: Optional[str] = None,
        system_prompt: str = "",
        model_id: str = "chat-model",
        is_global: bool = False,
    ) -> Agent:
        now = now_ms()
        agent = Agent(
            id=gen_uuid(),
            name=name,
            description=description,
            system_prompt=system_prompt,
            model_id=model_id,
            user_id=user_id,
            is_global=is_global,
            created_at=now,
            updated_at=now,
        )
        self.session.add(agent)
        await self.session.flush()
        logger.info(f"Created agent {agent.id} for user {user_id}")
        return agent

    async def update(self, agent_id: str, user_id: str, **fields) -> Agent:
        agent = await self.require_owner(agent_id, user_id)
        for key in UPDATABLE_FIELDS:
            if key in fields and fields[key] is not None:
                setattr(agent, key, fields[key])
        agent.updated_at = now_ms()
        await self.session.flush()
        return agent

    async def delete(self, agent_id: str, user_id: str) -> Agent:
        """Delete an agent together with its agent-scope preferences."""
        agent = await self.require_owner(agent_id, user_id)
        removed = await PreferenceStore(self.session, Scope.AGENT).delete_for_scope(
            agent_id
        )
        await self.session.delete(agent)
        await self.session.flush()
        logger.info(f"Deleted agent {agent_id} and {removed} tool preferences")
        return agent
