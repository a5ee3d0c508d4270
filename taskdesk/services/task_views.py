"""Read-only views over a snapshot for listing screens."""

from datetime import datetime
from typing import Optional, Union
from pydantic import BaseModel

from taskdesk.models.agent import Agent
from taskdesk.models.snapshot import Snapshot
from taskdesk.models.task import Task, TaskStatus
from taskdesk.services.queue_drainer import fifo_sorted
from taskdesk.services.time_window import is_eligible_now

UNASSIGNED = "unassigned"


def pending_queue(tasks: list[Task], agent_id: Union[int, str, None] = None) -> list[Task]:
    """
    Pending tasks oldest first.

    `agent_id` narrows to one agent's backlog; UNASSIGNED narrows to the
    general pool.
    """
    pending = [task for task in tasks if task.status is TaskStatus.PENDING]
    if agent_id == UNASSIGNED:
        pending = [task for task in pending if task.assigned_to is None]
    elif agent_id is not None:
        pending = [task for task in pending if task.assigned_to == agent_id]
    return fifo_sorted(pending)


def recent_tasks(tasks: list[Task], limit: int = 20) -> list[Task]:
    """Newest first, at most `limit`."""
    return sorted(tasks, key=lambda task: (task.created_at, task.id), reverse=True)[:limit]


def pending_count(tasks: list[Task]) -> int:
    return sum(1 for task in tasks if task.status is TaskStatus.PENDING)


class AgentStatus(BaseModel):
    agent: Agent
    eligible: bool
    active_task: Optional[Task] = None
    backlog: int = 0


def agent_board(snapshot: Snapshot, now: Optional[datetime] = None) -> list[AgentStatus]:
    """One row per agent: eligibility, current task and queued work."""
    board = []
    for agent in snapshot.agents:
        active = next(
            (task for task in snapshot.tasks
             if task.status is TaskStatus.ACTIVE and task.assigned_to == agent.id),
            None,
        )
        board.append(AgentStatus(
            agent=agent,
            eligible=is_eligible_now(agent, now),
            active_task=active,
            backlog=len(pending_queue(snapshot.tasks, agent.id)),
        ))
    return board
