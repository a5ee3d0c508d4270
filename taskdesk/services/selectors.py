"""Agent selection strategies: round-robin rotation and least-loaded."""

from datetime import datetime
from typing import Optional

from taskdesk.models.agent import Agent
from taskdesk.models.task import Task, TaskStatus
from taskdesk.services.time_window import is_eligible_now

NOT_FOUND = -1

_LOAD_STATUSES = (TaskStatus.ACTIVE, TaskStatus.PENDING)


def worker_positions(agents: list[Agent]) -> list[int]:
    """Indices into `agents` of the rows whose role receives work."""
    return [index for index, agent in enumerate(agents) if agent.receives_work]


def next_available(agents: list[Agent], cursor: int, now: Optional[datetime] = None) -> int:
    """
    Round-robin scan for a free, schedule-eligible worker.

    The scan starts at `cursor mod worker count` and wraps once around the
    workers. Returns the index into the unfiltered `agents` list, or
    NOT_FOUND.
    """
    positions = worker_positions(agents)
    if not positions:
        return NOT_FOUND

    count = len(positions)
    start = cursor % count
    for step in range(count):
        index = positions[(start + step) % count]
        agent = agents[index]
        if agent.available and is_eligible_now(agent, now) and agent.activo:
            return index
    return NOT_FOUND


def next_ignoring_availability(agents: list[Agent], cursor: int, now: Optional[datetime] = None) -> int:
    """
    Pick the schedule-eligible worker in slot `cursor mod eligible count`,
    busy or not. Used for forced placement into an agent's queue.
    """
    eligible = [index for index in worker_positions(agents) if is_eligible_now(agents[index], now)]
    if not eligible:
        return NOT_FOUND
    return eligible[cursor % len(eligible)]


def task_load(agent_id: int, tasks: list[Task]) -> int:
    """Number of active or pending tasks assigned to the agent."""
    return sum(
        1 for task in tasks
        if task.assigned_to == agent_id and task.status in _LOAD_STATUSES
    )


def least_loaded(agents: list[Agent], tasks: list[Task], now: Optional[datetime] = None) -> int:
    """Schedule-eligible worker with the fewest active+pending tasks; first one wins ties."""
    best_index = NOT_FOUND
    best_load = None
    for index in worker_positions(agents):
        agent = agents[index]
        if not is_eligible_now(agent, now):
            continue
        load = task_load(agent.id, tasks)
        if best_load is None or load < best_load:
            best_index, best_load = index, load
    return best_index


class RotationCursor:
    """Round-robin pointer owned by a scheduler session."""

    def __init__(self, position: int = 0):
        self.position = position

    def advance_past(self, agents: list[Agent], index: int) -> int:
        """Move the cursor to the worker after `agents[index]` and return it."""
        positions = worker_positions(agents)
        if index not in positions:
            return self.position
        self.position = (positions.index(index) + 1) % len(positions)
        return self.position

    def reset(self) -> None:
        self.position = 0

    def __repr__(self) -> str:
        return f"RotationCursor(position={self.position})"
