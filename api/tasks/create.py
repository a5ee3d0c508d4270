"""Task creation endpoint."""

import logging
from pydantic import ValidationError

from api._shared import error_response, header, json_response, parse_body, run_async
from taskdesk.services.assignment_policy import AssignmentRequest
from taskdesk.services.scheduler import get_scheduler_session
from taskdesk.utils.errors import TaskDeskError
from taskdesk.utils.logging import correlation_context

logger = logging.getLogger(__name__)


def handler(request):
    """
    Create a task.

    Body: {"description", "mode": auto|manual, "assignment_type": availability|direct, "agent_id"}
    """
    if request.get("method", "POST").upper() != "POST":
        return json_response(405, {"error": "method not allowed", "code": "method_not_allowed"})

    with correlation_context(header(request, "x-correlation-id") or None) as correlation_id:
        try:
            assignment = AssignmentRequest.model_validate(parse_body(request))
            created = run_async(get_scheduler_session().create_task(assignment))
        except TaskDeskError as e:
            return error_response(e)
        except ValidationError as e:
            return error_response(e)
        except Exception as e:
            logger.error(f"Error creating task: {e}", exc_info=True)
            return error_response(e)

        return json_response(201, {
            "task": created.task.model_dump(mode="json"),
            "outcome": created.outcome.value,
            "correlation_id": correlation_id,
        })
