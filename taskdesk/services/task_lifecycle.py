"""Task status transitions: complete, cancel and reassign."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from taskdesk.models.snapshot import Snapshot
from taskdesk.models.task import Task, TaskStatus
from taskdesk.services.time_window import is_eligible_now
from taskdesk.utils.errors import (
    AgentIneligibleError,
    AgentNotFoundError,
    AgentNotSelectedError,
    InvalidTransitionError,
    TaskNotFoundError,
)

# Completing requires someone working on the task; cancelling also clears queued work.
ALLOWED_FROM = {
    TaskStatus.COMPLETED: (TaskStatus.ACTIVE,),
    TaskStatus.CANCELLED: (TaskStatus.ACTIVE, TaskStatus.PENDING),
}
REASSIGNABLE = (TaskStatus.ACTIVE, TaskStatus.PENDING)


class ReassignmentPlan(BaseModel):
    """Validated reassignment ready to be written."""
    task_id: int
    agent_id: int
    keep_pending: bool
    previous_agent_id: Optional[int] = None
    previous_status: TaskStatus


def require_task(snapshot: Snapshot, task_id: int) -> Task:
    task = snapshot.task(task_id)
    if task is None:
        raise TaskNotFoundError(task_id)
    return task


def should_close(task: Task, target: TaskStatus) -> bool:
    """
    Whether a complete/cancel must be written.

    Terminal tasks are left alone (False). Completing a task that is still
    pending is rejected.
    """
    if task.status.is_terminal:
        return False
    if task.status not in ALLOWED_FROM[target]:
        raise InvalidTransitionError(
            f"Task {task.id} is {task.status.value} and cannot be marked {target.value}"
        )
    return True


def plan_reassignment(
    snapshot: Snapshot,
    task_id: int,
    agent_id: Optional[int],
    keep_pending: bool = False,
    now: Optional[datetime] = None,
) -> ReassignmentPlan:
    """
    Validate a reassignment against the snapshot.

    A reassignment to an agent already busy with a different task keeps
    the task pending in that agent's queue.
    """
    task = require_task(snapshot, task_id)
    if task.status not in REASSIGNABLE:
        raise InvalidTransitionError(f"Task {task_id} is {task.status.value} and cannot be reassigned")
    if agent_id is None:
        raise AgentNotSelectedError()

    agent = snapshot.agent(agent_id)
    if agent is None:
        raise AgentNotFoundError(agent_id)
    if not is_eligible_now(agent, now):
        raise AgentIneligibleError(agent_id)

    holds_this_task = task.status is TaskStatus.ACTIVE and task.assigned_to == agent_id
    busy_elsewhere = not agent.available and not holds_this_task

    return ReassignmentPlan(
        task_id=task_id,
        agent_id=agent_id,
        keep_pending=keep_pending or busy_elsewhere,
        previous_agent_id=task.assigned_to,
        previous_status=task.status,
    )
