"""Task board endpoint: agent status, recent tasks and pending queues."""

import logging

from api._shared import error_response, json_response, run_async
from taskdesk.services.scheduler import get_scheduler_session
from taskdesk.services.task_views import UNASSIGNED, agent_board, pending_count, pending_queue, recent_tasks
from taskdesk.utils.errors import TaskDeskError
from taskdesk.utils.logging import correlation_context

logger = logging.getLogger(__name__)


def handler(request):
    """GET. Optional query `agent_id` returns that agent's pending queue as `queue`."""
    query = request.get("query", {}) or {}
    with correlation_context():
        try:
            limit = int(query.get("limit", "20"))
            session = get_scheduler_session()
            snapshot = run_async(session.load_snapshot())
            now = session.clock()

            payload = {
                "agents": [row.model_dump(mode="json") for row in agent_board(snapshot, now)],
                "recent": [task.model_dump(mode="json") for task in recent_tasks(snapshot.tasks, limit)],
                "pending_count": pending_count(snapshot.tasks),
                "pool": [task.model_dump(mode="json") for task in pending_queue(snapshot.tasks, UNASSIGNED)],
            }
            if query.get("agent_id"):
                agent_id = int(query["agent_id"])
                payload["queue"] = [
                    task.model_dump(mode="json") for task in pending_queue(snapshot.tasks, agent_id)
                ]
            return json_response(200, payload)
        except TaskDeskError as e:
            return error_response(e)
        except ValueError:
            return json_response(400, {"error": "limit and agent_id must be integers", "code": "invalid_request"})
        except Exception as e:
            logger.error(f"Error loading task board: {e}", exc_info=True)
            return error_response(e)
