"""Scheduler session - the stateful entry point for every task mutation."""

import asyncio
from datetime import datetime
from typing import Callable, Optional
from pydantic import BaseModel

from taskdesk.models.snapshot import Snapshot
from taskdesk.models.task import Task, TaskStatus
from taskdesk.services.assignment_policy import (
    AssignmentOutcome,
    AssignmentRequest,
    decide_assignment,
)
from taskdesk.services.availability import busy_violations, with_availability
from taskdesk.services.change_feed import ChangeEvent, ChangeFeed, ChangeKind
from taskdesk.services.queue_drainer import DrainAssignment, plan_drain
from taskdesk.services.selectors import RotationCursor
from taskdesk.services.supabase_client import SupabaseTaskStore, utc_now_iso
from taskdesk.services.task_lifecycle import (
    ALLOWED_FROM,
    plan_reassignment,
    require_task,
    should_close,
)
from taskdesk.services.time_window import current_time
from taskdesk.utils.errors import (
    AssignmentValidationError,
    InvalidTransitionError,
    NoEligibleAgentError,
    SupabaseError,
)
from taskdesk.utils.logging import get_structured_logger, log_timing, sanitize_task_text
from taskdesk.utils.settings import SchedulerConfig

logger = get_structured_logger(__name__)


class CreatedTask(BaseModel):
    """Result of a task creation."""
    task: Task
    outcome: AssignmentOutcome


class DrainResult(BaseModel):
    """Result of one reconciliation pass."""
    assignment: Optional[DrainAssignment] = None
    applied: bool = False


class SchedulerSession:
    """
    Owns the rotation cursor and serialises snapshot -> decide -> write
    sequences within this process.

    `store` is anything with the SupabaseTaskStore coroutine interface.
    `clock` returns the evaluation instant for eligibility checks.
    """

    def __init__(
        self,
        store=None,
        feed: Optional[ChangeFeed] = None,
        strategy: Optional[str] = None,
        cursor: Optional[RotationCursor] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store if store is not None else SupabaseTaskStore()
        self.feed = feed if feed is not None else ChangeFeed()
        self.strategy = strategy or SchedulerConfig.selection_strategy()
        self.cursor = cursor if cursor is not None else RotationCursor()
        self.clock = clock or current_time
        self.tasks_table = getattr(self.store, "tasks_table", SchedulerConfig.TASKS_TABLE)
        self._lock = asyncio.Lock()

    async def load_snapshot(self) -> Snapshot:
        """Fetch agents and tasks and derive availability."""
        with log_timing("load_snapshot", logger=logger):
            agents = await self.store.list_agents()
            tasks = await self.store.list_tasks()

        violations = busy_violations(tasks)
        if violations:
            logger.warning("Agents hold more than one active task", violations=violations)

        return Snapshot(agents=with_availability(agents, tasks), tasks=tasks, loaded_at=self.clock())

    async def create_task(self, request: AssignmentRequest) -> CreatedTask:
        """
        Create a task according to the assignment policy, then drain the
        pending queue.

        The returned task is the row as inserted; the drain that follows may
        already have activated it.
        """
        with log_timing("create_task", logger=logger, mode=request.mode.value):
            async with self._lock:
                snapshot = await self.load_snapshot()
                try:
                    decision = decide_assignment(
                        request,
                        snapshot.agents,
                        snapshot.tasks,
                        self.cursor.position,
                        strategy=self.strategy,
                        now=self.clock(),
                    )
                except (AssignmentValidationError, NoEligibleAgentError) as e:
                    logger.info(
                        "Task creation rejected",
                        code=e.code,
                        reason=str(e),
                        mode=request.mode.value,
                        assignment_type=request.assignment_type.value,
                        agent_id=request.agent_id
                    )
                    raise

                task = await self.store.insert_task(decision.description, decision.assigned_to, decision.status)
                if decision.advance_past_index is not None:
                    self.cursor.advance_past(snapshot.agents, decision.advance_past_index)

        logger.info(
            "Task created",
            task_id=task.id,
            status=task.status.value,
            assigned_to=task.assigned_to,
            outcome=decision.outcome.value,
            cursor=self.cursor.position,
            description=sanitize_task_text(task.description)
        )
        await self._signal(ChangeKind.INSERT, task)
        await self._drain_after_write("create_task", task.id)
        return CreatedTask(task=task, outcome=decision.outcome)

    async def complete_task(self, task_id: int) -> bool:
        """Mark an active task completed. Returns False when the task was already closed."""
        return await self._close(task_id, TaskStatus.COMPLETED)

    async def cancel_task(self, task_id: int) -> bool:
        """Cancel an active or pending task. Returns False when the task was already closed."""
        return await self._close(task_id, TaskStatus.CANCELLED)

    async def _close(self, task_id: int, target: TaskStatus) -> bool:
        async with self._lock:
            snapshot = await self.load_snapshot()
            task = require_task(snapshot, task_id)
            if not should_close(task, target):
                logger.info(
                    "Task already closed, ignoring",
                    task_id=task_id,
                    status=task.status.value,
                    requested=target.value
                )
                return False
            applied = await self.store.update_task_status(
                task_id, target, completed_at=utc_now_iso(), expected=ALLOWED_FROM[target]
            )

        if not applied:
            logger.info("Task changed before close was written", task_id=task_id, requested=target.value)
            return False

        logger.info(
            "Task closed",
            task_id=task_id,
            previous_status=task.status.value,
            status=target.value,
            agent_id=task.assigned_to
        )
        await self._signal(ChangeKind.UPDATE, task.model_copy(update={"status": target}))
        if task.status is TaskStatus.ACTIVE:
            await self._drain_after_write("close_task", task_id)
        return True

    async def reassign_task(self, task_id: int, agent_id: Optional[int], keep_pending: bool = False) -> Task:
        """
        Move a task to another agent, bumping its reassignment counter, then
        drain the pending queue. Returns the row as written by the reassignment.
        """
        async with self._lock:
            snapshot = await self.load_snapshot()
            plan = plan_reassignment(snapshot, task_id, agent_id, keep_pending, now=self.clock())
            task = await self.store.reassign_task(plan.task_id, plan.agent_id, plan.keep_pending)

        if task is None:
            raise InvalidTransitionError(f"Task {task_id} was closed before it could be reassigned")

        logger.info(
            "Task reassigned",
            task_id=task.id,
            from_agent_id=plan.previous_agent_id,
            to_agent_id=task.assigned_to,
            status=task.status.value,
            keep_pending_requested=keep_pending,
            reassignments=task.contador_reasignaciones
        )
        await self._signal(ChangeKind.UPDATE, task)
        await self._drain_after_write("reassign_task", task.id)
        return task

    async def drain_once(self) -> DrainResult:
        """One reconciliation pass: at most one pending task becomes active."""
        async with self._lock:
            snapshot = await self.load_snapshot()
            assignment = plan_drain(snapshot.agents, snapshot.tasks, now=self.clock())
            if assignment is None:
                return DrainResult()
            applied = await self.store.assign_pending_task(assignment.task_id, assignment.agent_id)

        if not applied:
            logger.info(
                "Pending task no longer pending, skipping",
                task_id=assignment.task_id,
                agent_id=assignment.agent_id
            )
            return DrainResult(assignment=assignment, applied=False)

        logger.info(
            "Pending task assigned",
            task_id=assignment.task_id,
            agent_id=assignment.agent_id,
            source=assignment.source.value
        )
        await self.feed.publish(ChangeEvent(
            table=self.tasks_table,
            kind=ChangeKind.UPDATE,
            record={"id": assignment.task_id, "agente": str(assignment.agent_id)},
        ))
        return DrainResult(assignment=assignment, applied=True)

    async def drain_until_stable(self, max_passes: Optional[int] = None) -> int:
        """Repeat passes until one assigns nothing. Returns the number of tasks assigned."""
        max_passes = max_passes or SchedulerConfig.SCHEDULER_MAX_DRAIN_PASSES
        assigned = 0
        with log_timing("drain_until_stable", logger=logger):
            for _ in range(max_passes):
                result = await self.drain_once()
                if result.assignment is None:
                    break
                if result.applied:
                    assigned += 1
            else:
                logger.warning("Drain stopped before reaching a stable state", max_passes=max_passes)
        return assigned

    async def _drain_after_write(self, operation: str, task_id: int) -> None:
        """Drain after a committed write; store failures are logged and left to the next reconciliation."""
        try:
            await self.drain_until_stable()
        except SupabaseError as e:
            logger.warning(
                "Drain after write failed",
                operation=operation,
                task_id=task_id,
                error=str(e)
            )

    async def _signal(self, kind: ChangeKind, task: Task) -> None:
        await self.feed.publish(ChangeEvent(
            table=self.tasks_table,
            kind=kind,
            record=task.model_dump(mode="json"),
        ))


# Process-wide session instance
_scheduler_session: Optional[SchedulerSession] = None


def get_scheduler_session() -> SchedulerSession:
    """Get or create the process-wide scheduler session."""
    global _scheduler_session
    if _scheduler_session is None:
        _scheduler_session = SchedulerSession()
    return _scheduler_session


def reset_scheduler_session() -> None:
    """Forget the process-wide session; the rotation cursor starts again at 0."""
    global _scheduler_session
    _scheduler_session = None
