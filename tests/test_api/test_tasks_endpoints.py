"""Tests for the task create, action and board endpoints."""

import pytest

from api.tasks.actions import handler as actions_handler
from api.tasks.create import handler as create_handler
from api.tasks.list import handler as list_handler
from taskdesk.models.task import TaskStatus
from tests.utils.helpers import create_vercel_request, response_json


@pytest.mark.unit
def test_create_task_auto(api_session):
    response = create_handler(create_vercel_request(body={"description": "fix printer"}))

    assert response["statusCode"] == 201
    body = response_json(response)
    assert body["task"]["assigned_to"] == 2
    assert body["task"]["status"] == "active"
    assert body["outcome"] == "assigned"
    assert body["correlation_id"]


@pytest.mark.unit
def test_create_task_keeps_caller_correlation_id(api_session):
    request = create_vercel_request(
        body={"description": "fix printer"},
        headers={"Content-Type": "application/json", "X-Correlation-ID": "abc-123"},
    )

    assert response_json(create_handler(request))["correlation_id"] == "abc-123"


@pytest.mark.unit
def test_create_task_manual_busy_agent_queues(api_session):
    response = create_handler(create_vercel_request(
        body={"description": "call back", "mode": "manual", "agent_id": 1}
    ))

    body = response_json(response)
    assert response["statusCode"] == 201
    assert body["task"]["status"] == "pending"
    assert body["outcome"] == "queued_to_agent"


@pytest.mark.unit
@pytest.mark.parametrize("body,code", [
    ({"description": "   "}, "empty_description"),
    ({"description": "x", "mode": "manual"}, "agent_not_selected"),
    ({"description": "x", "mode": "manual", "agent_id": 99}, "agent_not_found"),
    ({"description": "x", "mode": "sideways"}, "invalid_request"),
])
def test_create_task_validation_errors(api_session, body, code):
    response = create_handler(create_vercel_request(body=body))

    assert response["statusCode"] in (400, 404)
    assert response_json(response)["code"] == code
    assert "insert_task" not in api_session.store.call_names()


@pytest.mark.unit
def test_create_task_persistence_failure(api_session):
    api_session.store.fail_on.add("insert_task")

    response = create_handler(create_vercel_request(body={"description": "fix printer"}))

    assert response["statusCode"] == 502
    assert response_json(response)["code"] == "persistence_error"
    assert api_session.cursor.position == 0


@pytest.mark.unit
def test_create_task_wrong_method(api_session):
    assert create_handler(create_vercel_request(method="GET"))["statusCode"] == 405


@pytest.mark.unit
def test_complete_task_drains_backlog(api_session):
    response = actions_handler(create_vercel_request(body={"action": "complete", "task_id": 10}))

    assert response["statusCode"] == 200
    assert response_json(response) == {"ok": True, "applied": True}
    assert api_session.store.tasks[10].status is TaskStatus.COMPLETED
    assert api_session.store.tasks[11].status is TaskStatus.ACTIVE


@pytest.mark.unit
def test_complete_closed_task_is_noop(api_session):
    response = actions_handler(create_vercel_request(body={"action": "complete", "task_id": "13"}))

    assert response["statusCode"] == 200
    assert response_json(response)["applied"] is False


@pytest.mark.unit
def test_complete_pending_task_rejected(api_session):
    response = actions_handler(create_vercel_request(body={"action": "complete", "task_id": 12}))

    assert response["statusCode"] == 400
    assert response_json(response)["code"] == "invalid_transition"


@pytest.mark.unit
def test_cancel_pending_task(api_session):
    response = actions_handler(create_vercel_request(body={"action": "cancel", "task_id": 12}))

    assert response_json(response)["applied"] is True
    assert api_session.store.tasks[12].status is TaskStatus.CANCELLED


@pytest.mark.unit
def test_reassign_task(api_session):
    response = actions_handler(create_vercel_request(
        body={"action": "reassign", "task_id": 12, "agent_id": 2, "keep_pending": True}
    ))

    assert response["statusCode"] == 200
    task = response_json(response)["task"]
    assert task["assigned_to"] == 2
    assert task["status"] == "pending"
    assert task["contador_reasignaciones"] == 1


@pytest.mark.unit
@pytest.mark.parametrize("flag", ["false", "0", "no", False])
def test_reassign_keep_pending_false_strings(api_session, flag):
    response = actions_handler(create_vercel_request(
        body={"action": "reassign", "task_id": 12, "agent_id": 2, "keep_pending": flag}
    ))

    assert response["statusCode"] == 200
    assert response_json(response)["task"]["status"] == "active"


@pytest.mark.unit
def test_reassign_keep_pending_true_string(api_session):
    response = actions_handler(create_vercel_request(
        body={"action": "reassign", "task_id": 11, "agent_id": 2, "keep_pending": "true"}
    ))

    assert response_json(response)["task"]["status"] == "pending"


@pytest.mark.unit
def test_action_name_is_case_insensitive(api_session):
    response = actions_handler(create_vercel_request(body={"action": "Cancel", "task_id": 12}))

    assert response_json(response)["applied"] is True


@pytest.mark.unit
def test_unknown_task_is_404(api_session):
    response = actions_handler(create_vercel_request(body={"action": "cancel", "task_id": 404}))

    assert response["statusCode"] == 404
    assert response_json(response)["code"] == "task_not_found"


@pytest.mark.unit
@pytest.mark.parametrize("body", [
    {"action": "archive", "task_id": 10},
    {"action": "complete"},
    {"action": "reassign", "task_id": "ten", "agent_id": 2},
    {"action": "reassign", "task_id": 12, "agent_id": 2, "keep_pending": "maybe"},
])
def test_bad_action_requests(api_session, body):
    response = actions_handler(create_vercel_request(body=body))

    assert response["statusCode"] == 400
    assert response_json(response)["code"] == "invalid_request"


@pytest.mark.unit
def test_task_board(api_session):
    response = list_handler(create_vercel_request(method="GET", body=None, query={"agent_id": "1"}))

    assert response["statusCode"] == 200
    body = response_json(response)
    assert [row["agent"]["id"] for row in body["agents"]] == [1, 2]
    assert body["agents"][0]["active_task"]["id"] == 10
    assert body["agents"][0]["backlog"] == 1
    assert body["pending_count"] == 2
    assert [task["id"] for task in body["pool"]] == [12]
    assert [task["id"] for task in body["queue"]] == [11]
    assert [task["id"] for task in body["recent"]] == [13, 12, 11, 10]


@pytest.mark.unit
def test_task_board_bad_limit(api_session):
    response = list_handler(create_vercel_request(method="GET", body=None, query={"limit": "many"}))

    assert response["statusCode"] == 400
