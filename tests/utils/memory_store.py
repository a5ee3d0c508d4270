"""In-memory stand-in for SupabaseTaskStore."""

import asyncio
import itertools
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional

from taskdesk.models.agent import Agent
from taskdesk.models.task import Task, TaskStatus
from taskdesk.utils.errors import SupabaseError

from tests.utils.factories import BASE_TIME


class InMemoryTaskStore:
    """
    Same coroutine interface as SupabaseTaskStore. Each call yields to the
    event loop once before touching state, and each write is applied
    without a further suspension, like a single-row UPDATE.
    """

    agents_table = "agentes"
    tasks_table = "tarea"

    def __init__(self, agents: Iterable[Agent] = (), tasks: Iterable[Task] = ()):
        self.agents: dict[int, Agent] = {agent.id: agent for agent in agents}
        self.tasks: dict[int, Task] = {task.id: task for task in tasks}
        self._ids = itertools.count(max(self.tasks, default=0) + 1)
        self._agent_ids = itertools.count(max(self.agents, default=0) + 1)
        self._created = itertools.count(1)
        self.calls: list[tuple[str, tuple]] = []
        self.fail_on: set[str] = set()

    async def _enter(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))
        await asyncio.sleep(0)
        if name in self.fail_on:
            raise SupabaseError(f"{name} failed")

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]

    async def list_agents(self) -> list[Agent]:
        await self._enter("list_agents")
        return [agent.model_copy(update={"available": True}) for agent in self.agents.values()]

    async def list_tasks(self) -> list[Task]:
        await self._enter("list_tasks")
        return [task.model_copy() for task in self.tasks.values()]

    async def insert_task(self, description: str, assigned_to: Optional[int], status: TaskStatus) -> Task:
        await self._enter("insert_task", description, assigned_to, status)
        task = Task(
            id=next(self._ids),
            description=description,
            assigned_to=assigned_to,
            status=status,
            created_at=BASE_TIME + timedelta(hours=4, seconds=next(self._created)),
        )
        self.tasks[task.id] = task
        return task.model_copy()

    async def update_task_status(
        self,
        task_id: int,
        status: TaskStatus,
        completed_at: Optional[str] = None,
        expected: Iterable[TaskStatus] = (TaskStatus.ACTIVE, TaskStatus.PENDING),
    ) -> bool:
        await self._enter("update_task_status", task_id, status)
        task = self.tasks.get(task_id)
        if task is None or task.status not in tuple(expected):
            return False
        self.tasks[task_id] = task.model_copy(update={
            "status": status,
            "fecha_finalizacion": datetime.fromisoformat(completed_at) if completed_at else None,
        })
        return True

    async def reassign_task(self, task_id: int, agent_id: int, keep_pending: bool) -> Optional[Task]:
        await self._enter("reassign_task", task_id, agent_id, keep_pending)
        task = self.tasks.get(task_id)
        if task is None or task.status.is_terminal:
            return None
        updated = task.model_copy(update={
            "assigned_to": agent_id,
            "status": TaskStatus.PENDING if keep_pending else TaskStatus.ACTIVE,
            "ultima_reasignacion": datetime.now(timezone.utc),
            "contador_reasignaciones": task.contador_reasignaciones + 1,
        })
        self.tasks[task_id] = updated
        return updated.model_copy()

    async def assign_pending_task(self, task_id: int, agent_id: int) -> bool:
        await self._enter("assign_pending_task", task_id, agent_id)
        task = self.tasks.get(task_id)
        if task is None or task.status is not TaskStatus.PENDING:
            return False
        self.tasks[task_id] = task.model_copy(update={"assigned_to": agent_id, "status": TaskStatus.ACTIVE})
        return True

    async def create_agent(self, data: dict[str, Any]) -> Agent:
        await self._enter("create_agent", data)
        agent = Agent.from_row({"id": next(self._agent_ids), **data})
        self.agents[agent.id] = agent
        return agent

    async def update_agent(self, agent_id: int, data: dict[str, Any]) -> Agent:
        await self._enter("update_agent", agent_id, data)
        if agent_id not in self.agents:
            raise SupabaseError(f"Failed to update agent: {agent_id}")
        agent = Agent.from_row({"id": agent_id, **data})
        self.agents[agent_id] = agent
        return agent

    async def delete_agent(self, agent_id: int) -> None:
        await self._enter("delete_agent", agent_id)
        self.agents.pop(agent_id, None)
