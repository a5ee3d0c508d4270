"""Derivation of the per-agent `available` flag from the task set."""

from typing import Iterable

from taskdesk.models.agent import Agent
from taskdesk.models.task import Task, TaskStatus


def compute_availability(agents: Iterable[Agent], tasks: Iterable[Task]) -> dict[int, bool]:
    """Map agent id -> True iff the agent holds no active task."""
    busy = {
        task.assigned_to
        for task in tasks
        if task.status is TaskStatus.ACTIVE and task.assigned_to is not None
    }
    return {agent.id: agent.id not in busy for agent in agents}


def with_availability(agents: list[Agent], tasks: list[Task]) -> list[Agent]:
    """Copies of `agents` with `available` recomputed from `tasks`."""
    availability = compute_availability(agents, tasks)
    return [agent.model_copy(update={"available": availability[agent.id]}) for agent in agents]


def busy_violations(tasks: Iterable[Task]) -> dict[int, list[int]]:
    """Agents holding more than one active task, mapped to those task ids."""
    active: dict[int, list[int]] = {}
    for task in tasks:
        if task.status is TaskStatus.ACTIVE and task.assigned_to is not None:
            active.setdefault(task.assigned_to, []).append(task.id)
    return {agent_id: ids for agent_id, ids in active.items() if len(ids) > 1}
