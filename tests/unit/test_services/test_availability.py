"""Tests for availability derivation."""

import pytest

from taskdesk.models.task import TaskStatus
from taskdesk.services.availability import busy_violations, compute_availability, with_availability
from tests.utils.factories import make_agent, make_task


@pytest.mark.unit
def test_agent_with_active_task_is_busy():
    a, b = make_agent(1), make_agent(2)
    tasks = [make_task(assigned_to=1, status=TaskStatus.ACTIVE)]

    assert compute_availability([a, b], tasks) == {1: False, 2: True}


@pytest.mark.unit
@pytest.mark.parametrize("status", [TaskStatus.PENDING, TaskStatus.COMPLETED, TaskStatus.CANCELLED])
def test_non_active_tasks_do_not_make_agent_busy(status):
    agent = make_agent(1)
    tasks = [make_task(assigned_to=1, status=status)]

    assert compute_availability([agent], tasks) == {1: True}


@pytest.mark.unit
def test_with_availability_returns_copies():
    agent = make_agent(1, available=True)
    tasks = [make_task(assigned_to=1, status=TaskStatus.ACTIVE)]

    derived = with_availability([agent], tasks)

    assert derived[0].available is False
    assert agent.available is True


@pytest.mark.unit
def test_busy_violations():
    tasks = [
        make_task(1, assigned_to=1, status=TaskStatus.ACTIVE),
        make_task(2, assigned_to=1, status=TaskStatus.ACTIVE),
        make_task(3, assigned_to=2, status=TaskStatus.ACTIVE),
    ]
    assert busy_violations(tasks) == {1: [1, 2]}
