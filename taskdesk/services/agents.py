"""Supervisor management of agents."""

from typing import Optional
from pydantic import BaseModel, Field, field_validator

from taskdesk.models.agent import Agent, AgentRole
from taskdesk.services.change_feed import ChangeEvent, ChangeFeed, ChangeKind
from taskdesk.utils.errors import PermissionDeniedError
from taskdesk.utils.logging import get_structured_logger, mask_email
from taskdesk.utils.settings import SchedulerConfig

logger = get_structured_logger(__name__)

_TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d(:[0-5]\d)?$"


class AgentInput(BaseModel):
    """Agent fields a supervisor may set."""
    nombre: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    entrada_laboral: str = Field(..., pattern=_TIME_PATTERN)
    salida_laboral: str = Field(..., pattern=_TIME_PATTERN)
    entrada_horario_comida: str = Field(..., pattern=_TIME_PATTERN)
    salida_horario_comida: str = Field(..., pattern=_TIME_PATTERN)
    activo: bool = True
    tipo_perfil: AgentRole = AgentRole.AGENTE

    @field_validator("nombre", "email")
    @classmethod
    def not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("email")
    @classmethod
    def looks_like_email(cls, value: str) -> str:
        if "@" not in value:
            raise ValueError("must be an e-mail address")
        return value


def require_supervisor(current_user: Optional[Agent]) -> None:
    if current_user is None or current_user.tipo_perfil is not AgentRole.MESA:
        raise PermissionDeniedError("Only Mesa profiles can manage agents")


class AgentDirectory:
    """Create, update and delete agents; each change is published on the feed."""

    def __init__(self, store, feed: Optional[ChangeFeed] = None):
        self.store = store
        self.feed = feed or ChangeFeed()
        self.table = getattr(store, "agents_table", SchedulerConfig.AGENTS_TABLE)

    async def identity(self, user_id: Optional[int]) -> Optional[Agent]:
        """Look up the calling agent; authentication happens upstream."""
        if user_id is None:
            return None
        for agent in await self.store.list_agents():
            if agent.id == user_id:
                return agent
        return None

    async def create(self, current_user: Optional[Agent], data: AgentInput) -> Agent:
        require_supervisor(current_user)
        agent = await self.store.create_agent(data.model_dump(mode="json"))
        logger.info("Agent created", agent_id=agent.id, email=mask_email(agent.email), role=agent.tipo_perfil.value)
        await self.feed.publish(ChangeEvent(table=self.table, kind=ChangeKind.INSERT, record={"id": agent.id}))
        return agent

    async def update(self, current_user: Optional[Agent], agent_id: int, data: AgentInput) -> Agent:
        require_supervisor(current_user)
        agent = await self.store.update_agent(agent_id, data.model_dump(mode="json"))
        logger.info("Agent updated", agent_id=agent_id, activo=agent.activo)
        await self.feed.publish(ChangeEvent(table=self.table, kind=ChangeKind.UPDATE, record={"id": agent_id}))
        return agent

    async def delete(self, current_user: Optional[Agent], agent_id: int) -> None:
        require_supervisor(current_user)
        await self.store.delete_agent(agent_id)
        logger.info("Agent deleted", agent_id=agent_id)
        await self.feed.publish(ChangeEvent(table=self.table, kind=ChangeKind.DELETE, old_record={"id": agent_id}))
