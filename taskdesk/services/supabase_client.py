"""Supabase client wrapper and the task/agent store built on it."""

import os
from datetime import datetime, timezone
from typing import Any, Iterable, Optional
from supabase import create_client, Client
from supabase.client import ClientOptions

from taskdesk.models.agent import Agent
from taskdesk.models.task import Task, TaskStatus
from taskdesk.utils.errors import SupabaseError
from taskdesk.utils.logging import get_structured_logger
from taskdesk.utils.settings import SchedulerConfig

logger = get_structured_logger(__name__)

# Global client instance (singleton pattern)
_client: Optional[Client] = None


def get_supabase_client() -> Client:
    """Get or create Supabase client singleton."""
    global _client

    if _client is None:
        url = os.environ.get("SUPABASE_URL")
        key = os.environ.get("SUPABASE_SERVICE_ROLE_KEY")

        if not url or not key:
            raise SupabaseError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")

        options = ClientOptions(
            auto_refresh_token=False,
            persist_session=False,
        )

        _client = create_client(url, key, options)
        logger.info("Supabase client initialized", url=url)

    return _client


async def close_supabase_client() -> None:
    """Drop the cached client."""
    global _client
    if _client:
        _client = None
        logger.info("Supabase client closed")


class SupabaseClient:
    """Async context manager for Supabase client."""

    def __init__(self):
        self.client: Optional[Client] = None

    async def __aenter__(self) -> Client:
        self.client = get_supabase_client()
        return self.client

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            logger.error(
                "Supabase operation error",
                error=str(exc_val),
                type=exc_type.__name__
            )
        return False


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _codes(statuses: Iterable[TaskStatus]) -> list[str]:
    return [status.db_code for status in statuses]


class SupabaseTaskStore:
    """
    Persistence collaborator for the scheduler.

    Every failure of the underlying client surfaces as SupabaseError; no
    retries happen here.
    """

    def __init__(self, agents_table: Optional[str] = None, tasks_table: Optional[str] = None):
        self.agents_table = agents_table or SchedulerConfig.AGENTS_TABLE
        self.tasks_table = tasks_table or SchedulerConfig.TASKS_TABLE

    async def list_agents(self) -> list[Agent]:
        async with SupabaseClient() as client:
            try:
                result = client.table(self.agents_table).select("*").order("id").execute()
            except Exception as e:
                raise SupabaseError(f"Failed to list agents: {e}") from e
        return [Agent.from_row(row) for row in result.data or []]

    async def list_tasks(self) -> list[Task]:
        async with SupabaseClient() as client:
            try:
                result = client.table(self.tasks_table).select("*").order("created_at", desc=True).execute()
            except Exception as e:
                raise SupabaseError(f"Failed to list tasks: {e}") from e
        return [Task.from_row(row) for row in result.data or []]

    async def insert_task(self, description: str, assigned_to: Optional[int], status: TaskStatus) -> Task:
        row = {
            "tarea": description,
            "agente": str(assigned_to) if assigned_to is not None else None,
            "activo": status.db_code,
        }
        async with SupabaseClient() as client:
            try:
                result = client.table(self.tasks_table).insert(row).execute()
            except Exception as e:
                raise SupabaseError(f"Failed to create task: {e}") from e
        if not result.data:
            raise SupabaseError("Failed to create task: no data returned")
        return Task.from_row(result.data[0])

    async def update_task_status(
        self,
        task_id: int,
        status: TaskStatus,
        completed_at: Optional[str] = None,
        expected: Iterable[TaskStatus] = (TaskStatus.ACTIVE, TaskStatus.PENDING),
    ) -> bool:
        """Set the status only if the row is still in one of `expected`. Returns whether it applied."""
        updates: dict[str, Any] = {"activo": status.db_code}
        if completed_at is not None:
            updates["fecha_finalizacion"] = completed_at
        async with SupabaseClient() as client:
            try:
                result = (
                    client.table(self.tasks_table)
                    .update(updates)
                    .eq("id", task_id)
                    .in_("activo", _codes(expected))
                    .execute()
                )
            except Exception as e:
                raise SupabaseError(f"Failed to update task {task_id}: {e}") from e
        return bool(result.data)

    async def reassign_task(self, task_id: int, agent_id: int, keep_pending: bool) -> Optional[Task]:
        """
        Reassign through the `reassign_task` database function, which bumps
        `contador_reasignaciones` in the same UPDATE. Returns None when the
        task was already terminal.
        """
        params = {"p_task_id": task_id, "p_agent_id": agent_id, "p_keep_pending": keep_pending}
        async with SupabaseClient() as client:
            try:
                result = client.rpc("reassign_task", params).execute()
            except Exception as e:
                raise SupabaseError(f"Failed to reassign task {task_id}: {e}") from e
        rows = result.data
        if isinstance(rows, dict):
            rows = [rows]
        return Task.from_row(rows[0]) if rows else None

    async def assign_pending_task(self, task_id: int, agent_id: int) -> bool:
        """Activate a queued task for an agent, only if it is still pending."""
        async with SupabaseClient() as client:
            try:
                result = (
                    client.table(self.tasks_table)
                    .update({"agente": str(agent_id), "activo": TaskStatus.ACTIVE.db_code})
                    .eq("id", task_id)
                    .eq("activo", TaskStatus.PENDING.db_code)
                    .execute()
                )
            except Exception as e:
                raise SupabaseError(f"Failed to assign pending task {task_id}: {e}") from e
        return bool(result.data)

    async def create_agent(self, data: dict[str, Any]) -> Agent:
        async with SupabaseClient() as client:
            try:
                result = client.table(self.agents_table).insert(data).execute()
            except Exception as e:
                raise SupabaseError(f"Failed to create agent: {e}") from e
        if not result.data:
            raise SupabaseError("Failed to create agent: no data returned")
        return Agent.from_row(result.data[0])

    async def update_agent(self, agent_id: int, data: dict[str, Any]) -> Agent:
        async with SupabaseClient() as client:
            try:
                result = client.table(self.agents_table).update(data).eq("id", agent_id).execute()
            except Exception as e:
                raise SupabaseError(f"Failed to update agent {agent_id}: {e}") from e
        if not result.data:
            raise SupabaseError(f"Failed to update agent: {agent_id}")
        return Agent.from_row(result.data[0])

    async def delete_agent(self, agent_id: int) -> None:
        async with SupabaseClient() as client:
            try:
                client.table(self.agents_table).delete().eq("id", agent_id).execute()
            except Exception as e:
                raise SupabaseError(f"Failed to delete agent {agent_id}: {e}") from e
