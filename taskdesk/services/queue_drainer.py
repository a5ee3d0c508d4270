"""Pending-queue drainer - match one free agent to the oldest queued task per pass."""

from datetime import datetime
from enum import Enum
from typing import Iterable, Optional
from pydantic import BaseModel

from taskdesk.models.agent import Agent
from taskdesk.models.task import Task, TaskStatus
from taskdesk.services.time_window import is_eligible_now


class DrainSource(str, Enum):
    """Which queue a drained task came from."""
    BACKLOG = "backlog"
    POOL = "pool"


class DrainAssignment(BaseModel):
    """A single pending -> active move chosen by a pass."""
    task_id: int
    agent_id: int
    source: DrainSource


def fifo_sorted(tasks: Iterable[Task]) -> list[Task]:
    """Oldest first; id breaks timestamp ties."""
    return sorted(tasks, key=lambda task: (task.created_at, task.id))


def free_agents(agents: list[Agent], now: Optional[datetime] = None) -> list[Agent]:
    """Enabled, schedule-eligible agents with no active task, in list order."""
    return [
        agent for agent in agents
        if agent.activo and agent.available and is_eligible_now(agent, now)
    ]


def plan_drain(agents: list[Agent], tasks: list[Task], now: Optional[datetime] = None) -> Optional[DrainAssignment]:
    """
    Choose at most one assignment for this reconciliation pass.

    Each free agent, in list order, first takes the oldest task queued to
    them; failing that, the oldest unassigned task. The first match ends
    the pass.
    """
    available = free_agents(agents, now)
    if not available:
        return None

    pending = fifo_sorted(task for task in tasks if task.status is TaskStatus.PENDING)
    if not pending:
        return None

    for agent in available:
        own = next((task for task in pending if task.assigned_to == agent.id), None)
        if own is not None:
            return DrainAssignment(task_id=own.id, agent_id=agent.id, source=DrainSource.BACKLOG)

        pooled = next((task for task in pending if task.assigned_to is None), None)
        if pooled is not None:
            return DrainAssignment(task_id=pooled.id, agent_id=agent.id, source=DrainSource.POOL)

    return None
