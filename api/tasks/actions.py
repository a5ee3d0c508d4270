"""Task action endpoint: complete, cancel, reassign."""

import logging
from typing import Literal, Optional
from pydantic import BaseModel, ValidationError, field_validator

from api._shared import error_response, header, json_response, parse_body, run_async
from taskdesk.services.scheduler import get_scheduler_session
from taskdesk.utils.errors import TaskDeskError
from taskdesk.utils.logging import correlation_context

logger = logging.getLogger(__name__)


class TaskActionRequest(BaseModel):
    """Body of a task action."""
    action: Literal["complete", "cancel", "reassign"]
    task_id: int
    agent_id: Optional[int] = None
    keep_pending: bool = False

    @field_validator("action", mode="before")
    @classmethod
    def normalise_action(cls, value):
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("agent_id", mode="before")
    @classmethod
    def blank_agent_is_none(cls, value):
        return None if value == "" else value


def handler(request):
    """
    Body: {"action": complete|cancel|reassign, "task_id", "agent_id", "keep_pending"}
    """
    if request.get("method", "POST").upper() != "POST":
        return json_response(405, {"error": "method not allowed", "code": "method_not_allowed"})

    with correlation_context(header(request, "x-correlation-id") or None):
        try:
            action = TaskActionRequest.model_validate(parse_body(request))
            session = get_scheduler_session()

            if action.action == "complete":
                applied = run_async(session.complete_task(action.task_id))
                return json_response(200, {"ok": True, "applied": applied})
            if action.action == "cancel":
                applied = run_async(session.cancel_task(action.task_id))
                return json_response(200, {"ok": True, "applied": applied})

            task = run_async(session.reassign_task(
                action.task_id,
                action.agent_id,
                keep_pending=action.keep_pending,
            ))
            return json_response(200, {"ok": True, "task": task.model_dump(mode="json")})
        except TaskDeskError as e:
            return error_response(e)
        except ValidationError as e:
            return error_response(e)
        except Exception as e:
            logger.error(f"Error running task action: {e}", exc_info=True)
            return error_response(e)
