"""Error handling utilities."""

from typing import Optional


class TaskDeskError(Exception):
    """Base exception for the task desk backend."""
    code = "internal_error"


class AssignmentValidationError(TaskDeskError):
    """A precondition of an operation failed before any mutation."""
    code = "validation_error"


class EmptyDescriptionError(AssignmentValidationError):
    """Task description is empty or whitespace."""
    code = "empty_description"

    def __init__(self, message: str = "Task description is required"):
        super().__init__(message)


class AgentNotSelectedError(AssignmentValidationError):
    """Manual assignment without an agent."""
    code = "agent_not_selected"

    def __init__(self, message: str = "An agent must be selected"):
        super().__init__(message)


class AgentNotFoundError(AssignmentValidationError):
    """Referenced agent does not exist."""
    code = "agent_not_found"

    def __init__(self, agent_id: Optional[int] = None):
        self.agent_id = agent_id
        super().__init__(f"Agent not found: {agent_id}")


class AgentIneligibleError(AssignmentValidationError):
    """Agent is outside working hours, at lunch, disabled or not a worker."""
    code = "agent_ineligible"

    def __init__(self, agent_id: Optional[int] = None):
        self.agent_id = agent_id
        super().__init__(
            f"Agent {agent_id} is off schedule, on lunch break or cannot receive tasks"
        )


class TaskNotFoundError(AssignmentValidationError):
    """Referenced task does not exist."""
    code = "task_not_found"

    def __init__(self, task_id: Optional[int] = None):
        self.task_id = task_id
        super().__init__(f"Task not found: {task_id}")


class InvalidTransitionError(AssignmentValidationError):
    """Requested status transition is not allowed from the current status."""
    code = "invalid_transition"


class NoEligibleAgentError(TaskDeskError):
    """No agent is schedule-eligible for a forced assignment."""
    code = "no_eligible_agent"

    def __init__(self, message: str = "No agent is currently within working hours"):
        super().__init__(message)


class PermissionDeniedError(TaskDeskError):
    """Operation requires the supervisor role."""
    code = "permission_denied"


class WebhookVerificationError(TaskDeskError):
    """Change webhook secret verification failed."""
    code = "webhook_verification_failed"


class SupabaseError(TaskDeskError):
    """Supabase operation error."""
    code = "persistence_error"
