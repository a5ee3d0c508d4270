"""Task-creation policy: assign now, queue to an agent, queue to the pool, or reject."""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field

from taskdesk.models.agent import Agent
from taskdesk.models.task import AssignmentMode, AssignmentType, Task, TaskStatus
from taskdesk.services.selectors import (
    NOT_FOUND,
    least_loaded,
    next_available,
    next_ignoring_availability,
)
from taskdesk.services.time_window import is_eligible_now
from taskdesk.utils.errors import (
    AgentIneligibleError,
    AgentNotFoundError,
    AgentNotSelectedError,
    EmptyDescriptionError,
    NoEligibleAgentError,
)


class AssignmentOutcome(str, Enum):
    """Where a newly created task ended up."""
    ASSIGNED = "assigned"
    QUEUED_TO_AGENT = "queued_to_agent"
    QUEUED_UNASSIGNED = "queued_unassigned"


class AssignmentRequest(BaseModel):
    """Input of a task creation."""
    description: str = Field(default="", description="Task description, required non-empty")
    mode: AssignmentMode = Field(default=AssignmentMode.AUTO)
    assignment_type: AssignmentType = Field(default=AssignmentType.AVAILABILITY)
    agent_id: Optional[int] = Field(None, description="Explicit agent, manual mode only")


class AssignmentDecision(BaseModel):
    """What to insert, and which agent the rotation cursor should move past."""
    description: str
    status: TaskStatus
    assigned_to: Optional[int] = None
    outcome: AssignmentOutcome
    advance_past_index: Optional[int] = None


def _find_agent(agents: list[Agent], agent_id: int) -> Optional[Agent]:
    return next((agent for agent in agents if agent.id == agent_id), None)


def decide_assignment(
    request: AssignmentRequest,
    agents: list[Agent],
    tasks: list[Task],
    cursor: int,
    strategy: str = "rotation",
    now: Optional[datetime] = None,
) -> AssignmentDecision:
    """
    Decide how a new task is placed, given a snapshot.

    Raises a validation error (nothing to create) or NoEligibleAgentError
    for a forced assignment with nobody on shift.
    """
    description = (request.description or "").strip()
    if not description:
        raise EmptyDescriptionError()

    if request.mode is AssignmentMode.MANUAL:
        return _decide_manual(request, description, agents, now)

    if request.assignment_type is AssignmentType.DIRECT:
        index = next_ignoring_availability(agents, cursor, now)
        if index == NOT_FOUND:
            raise NoEligibleAgentError()
        return AssignmentDecision(
            description=description,
            status=TaskStatus.PENDING,
            assigned_to=agents[index].id,
            outcome=AssignmentOutcome.QUEUED_TO_AGENT,
            advance_past_index=index,
        )

    if strategy == "least_loaded":
        index = least_loaded(agents, tasks, now)
        if index == NOT_FOUND:
            return _unassigned(description)
        agent = agents[index]
        # The lightest agent may still be mid-task.
        if agent.available:
            return AssignmentDecision(
                description=description,
                status=TaskStatus.ACTIVE,
                assigned_to=agent.id,
                outcome=AssignmentOutcome.ASSIGNED,
            )
        return AssignmentDecision(
            description=description,
            status=TaskStatus.PENDING,
            assigned_to=agent.id,
            outcome=AssignmentOutcome.QUEUED_TO_AGENT,
        )

    index = next_available(agents, cursor, now)
    if index == NOT_FOUND:
        return _unassigned(description)
    return AssignmentDecision(
        description=description,
        status=TaskStatus.ACTIVE,
        assigned_to=agents[index].id,
        outcome=AssignmentOutcome.ASSIGNED,
        advance_past_index=index,
    )


def _decide_manual(
    request: AssignmentRequest,
    description: str,
    agents: list[Agent],
    now: Optional[datetime],
) -> AssignmentDecision:
    if request.agent_id is None:
        raise AgentNotSelectedError()

    agent = _find_agent(agents, request.agent_id)
    if agent is None:
        raise AgentNotFoundError(request.agent_id)
    if not is_eligible_now(agent, now):
        raise AgentIneligibleError(agent.id)

    if request.assignment_type is AssignmentType.DIRECT or not agent.available:
        return AssignmentDecision(
            description=description,
            status=TaskStatus.PENDING,
            assigned_to=agent.id,
            outcome=AssignmentOutcome.QUEUED_TO_AGENT,
        )
    return AssignmentDecision(
        description=description,
        status=TaskStatus.ACTIVE,
        assigned_to=agent.id,
        outcome=AssignmentOutcome.ASSIGNED,
    )


def _unassigned(description: str) -> AssignmentDecision:
    return AssignmentDecision(
        description=description,
        status=TaskStatus.PENDING,
        assigned_to=None,
        outcome=AssignmentOutcome.QUEUED_UNASSIGNED,
    )
