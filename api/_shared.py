"""Request/response helpers shared by the serverless handlers."""

import asyncio
import json
from typing import Any, Optional
from pydantic import ValidationError

from taskdesk.utils.errors import (
    AgentNotFoundError,
    AssignmentValidationError,
    NoEligibleAgentError,
    PermissionDeniedError,
    SupabaseError,
    TaskDeskError,
    TaskNotFoundError,
    WebhookVerificationError,
)

JSON_HEADERS = {"Content-Type": "application/json"}

_loop: Optional[asyncio.AbstractEventLoop] = None


def run_async(coro):
    """Run a coroutine on the module's event loop (kept across warm invocations)."""
    global _loop
    if _loop is None or _loop.is_closed():
        _loop = asyncio.new_event_loop()
        asyncio.set_event_loop(_loop)
    return _loop.run_until_complete(coro)


def json_response(status_code: int, payload: Any) -> dict:
    return {
        "statusCode": status_code,
        "headers": dict(JSON_HEADERS),
        "body": json.dumps(payload, default=str),
    }


def parse_body(request: dict) -> dict:
    raw = request.get("body") or ""
    if isinstance(raw, dict):
        return raw
    try:
        body = json.loads(raw) if raw else {}
    except json.JSONDecodeError:
        body = {}
    return body if isinstance(body, dict) else {}


def header(request: dict, name: str) -> str:
    headers = request.get("headers") or {}
    for key, value in headers.items():
        if key.lower() == name.lower():
            return value or ""
    return ""


def error_status(error: Exception) -> int:
    if isinstance(error, (TaskNotFoundError, AgentNotFoundError)):
        return 404
    if isinstance(error, (AssignmentValidationError, ValidationError)):
        return 400
    if isinstance(error, WebhookVerificationError):
        return 401
    if isinstance(error, PermissionDeniedError):
        return 403
    if isinstance(error, NoEligibleAgentError):
        return 409
    if isinstance(error, SupabaseError):
        return 502
    return 500


def error_response(error: Exception) -> dict:
    if isinstance(error, ValidationError):
        code = "invalid_request"
    elif isinstance(error, TaskDeskError):
        code = error.code
    else:
        code = "internal_error"
    message = str(error) if code != "internal_error" else "internal server error"
    return json_response(error_status(error), {"error": message, "code": code})
