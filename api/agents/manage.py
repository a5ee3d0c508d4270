"""Agent management endpoint (Mesa profiles only)."""

import logging
from typing import Literal, Optional
from pydantic import BaseModel, ValidationError, field_validator

from api._shared import error_response, header, json_response, parse_body, run_async
from taskdesk.services.agents import AgentDirectory, AgentInput
from taskdesk.services.scheduler import get_scheduler_session
from taskdesk.utils.errors import TaskDeskError
from taskdesk.utils.logging import correlation_context

logger = logging.getLogger(__name__)


class AgentActionRequest(BaseModel):
    """Body of an agent management call."""
    action: Literal["create", "update", "delete"]
    current_user_id: Optional[int] = None
    agent_id: Optional[int] = None
    agent: Optional[AgentInput] = None

    @field_validator("action", mode="before")
    @classmethod
    def normalise_action(cls, value):
        return value.strip().lower() if isinstance(value, str) else value


def handler(request):
    """
    Body: {"action": create|update|delete, "current_user_id", "agent_id", "agent": {...}}

    `current_user_id` identifies the caller; it must be a Mesa profile.
    """
    if request.get("method", "POST").upper() != "POST":
        return json_response(405, {"error": "method not allowed", "code": "method_not_allowed"})

    with correlation_context(header(request, "x-correlation-id") or None):
        try:
            body = AgentActionRequest.model_validate(parse_body(request))
            if body.action in ("update", "delete") and body.agent_id is None:
                return json_response(400, {"error": "agent_id is required", "code": "invalid_request"})
            if body.action in ("create", "update") and body.agent is None:
                return json_response(400, {"error": "agent is required", "code": "invalid_request"})

            session = get_scheduler_session()
            directory = AgentDirectory(session.store, session.feed)

            async def process():
                current_user = await directory.identity(body.current_user_id)
                if body.action == "create":
                    result = await directory.create(current_user, body.agent)
                elif body.action == "update":
                    result = await directory.update(current_user, body.agent_id, body.agent)
                else:
                    await directory.delete(current_user, body.agent_id)
                    result = None
                assigned = await session.drain_until_stable()
                return result, assigned

            agent, assigned = run_async(process())
            payload = {"ok": True, "assigned": assigned}
            if agent is not None:
                payload["agent"] = agent.model_dump(mode="json")
            return json_response(201 if body.action == "create" else 200, payload)
        except TaskDeskError as e:
            return error_response(e)
        except ValidationError as e:
            return error_response(e)
        except Exception as e:
            logger.error(f"Error managing agent: {e}", exc_info=True)
            return error_response(e)
