"""Shared pytest fixtures and configuration."""

import os
import pytest
from unittest.mock import MagicMock, patch
from freezegun import freeze_time

# Set test environment variables
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-key")
os.environ.setdefault("WEBHOOK_SECRET", "test-webhook-secret")
os.environ.setdefault("LOG_FORMAT", "text")

from taskdesk.models.task import TaskStatus
from taskdesk.services.change_feed import ChangeFeed
from taskdesk.services.scheduler import SchedulerSession

from tests.utils.memory_store import InMemoryTaskStore

from tests.utils.factories import AT_LUNCH, AT_TEN, make_agent, make_task


@pytest.fixture
def at_ten():
    return AT_TEN


@pytest.fixture
def at_lunch():
    return AT_LUNCH


@pytest.fixture
def mock_supabase_client():
    """Mock Supabase client whose query builders chain back to themselves."""
    client = MagicMock()
    query = MagicMock()
    for method in ("select", "insert", "update", "delete", "eq", "in_", "order", "is_", "limit"):
        getattr(query, method).return_value = query
    query.execute.return_value = MagicMock(data=[])
    client.table.return_value = query
    client.rpc.return_value.execute.return_value = MagicMock(data=[])
    client.query = query
    return client


@pytest.fixture
def make_session():
    """Build a SchedulerSession over an in-memory store at a fixed instant."""
    def _make(agents=(), tasks=(), now=AT_TEN, strategy="rotation"):
        store = InMemoryTaskStore(agents, tasks)
        return SchedulerSession(store=store, feed=ChangeFeed(), strategy=strategy, clock=lambda: now)
    return _make


@pytest.fixture
def freeze_time_fixture():
    """Fixture for freezing time in tests."""
    with freeze_time("2024-12-09 10:00:00") as frozen_time:
        yield frozen_time


@pytest.fixture
def api_session():
    """Session returned by every handler module, over an in-memory store."""
    store = InMemoryTaskStore(
        agents=[make_agent(1), make_agent(2)],
        tasks=[
            make_task(10, assigned_to=1, status=TaskStatus.ACTIVE, minutes=0),
            make_task(11, assigned_to=1, minutes=5),
            make_task(12, minutes=10),
            make_task(13, status=TaskStatus.COMPLETED, minutes=15),
        ],
    )
    session = SchedulerSession(store=store, feed=ChangeFeed(), strategy="rotation", clock=lambda: AT_TEN)
    targets = [
        "api.tasks.create.get_scheduler_session",
        "api.tasks.actions.get_scheduler_session",
        "api.tasks.list.get_scheduler_session",
        "api.queue.drain.get_scheduler_session",
        "api.changes.webhook.get_scheduler_session",
        "api.agents.manage.get_scheduler_session",
    ]
    patchers = [patch(target, return_value=session) for target in targets]
    for patcher in patchers:
        patcher.start()
    yield session
    for patcher in patchers:
        patcher.stop()
