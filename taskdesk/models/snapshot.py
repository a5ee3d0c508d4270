"""Point-in-time view of agents and tasks that scheduling decisions read from."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from taskdesk.models.agent import Agent
from taskdesk.models.task import Task


class Snapshot(BaseModel):
    """Agents (with `available` already derived) and tasks as loaded together."""
    agents: list[Agent] = Field(default_factory=list)
    tasks: list[Task] = Field(default_factory=list)
    loaded_at: Optional[datetime] = None

    def agent(self, agent_id: Optional[int]) -> Optional[Agent]:
        for agent in self.agents:
            if agent.id == agent_id:
                return agent
        return None

    def task(self, task_id: int) -> Optional[Task]:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None
