"""Test helper functions."""

import json
from typing import Any, Dict, Optional


def create_vercel_request(
    method: str = "POST",
    path: str = "/api/tasks/create",
    body: Any = None,
    headers: Optional[Dict[str, str]] = None,
    query: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    """Create a Vercel request object for testing."""
    if headers is None:
        headers = {
            "content-type": "application/json"
        }

    return {
        "method": method,
        "path": path,
        "headers": headers,
        "body": json.dumps(body) if isinstance(body, (dict, list)) else body,
        "query": query or {}
    }


def response_json(response: Dict[str, Any]) -> Any:
    return json.loads(response["body"])
