"""In-process change notifications for the agents and tasks tables."""

import inspect
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union
from pydantic import BaseModel, Field

from taskdesk.utils.logging import get_structured_logger, get_correlation_id

logger = get_structured_logger(__name__)

ALL_TABLES = "*"


class ChangeKind(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    REFRESH = "REFRESH"


class ChangeEvent(BaseModel):
    """A row change (or a bare refresh request) on a table."""
    table: str
    kind: ChangeKind = ChangeKind.REFRESH
    record: Optional[dict[str, Any]] = None
    old_record: Optional[dict[str, Any]] = None
    source: str = Field(default="local", description="local, webhook or timer")


Callback = Callable[[ChangeEvent], Union[None, Awaitable[None]]]


class ChangeFeed:
    """Fan-out of change events to table subscribers."""

    def __init__(self):
        self._subscribers: dict[str, list[Callback]] = {}

    def subscribe(self, table: str, callback: Callback) -> Callable[[], None]:
        """Register `callback` for `table` ("*" for all). Returns an unsubscribe function."""
        self._subscribers.setdefault(table, []).append(callback)

        def unsubscribe() -> None:
            callbacks = self._subscribers.get(table, [])
            if callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe

    def subscriber_count(self, table: str) -> int:
        return len(self._subscribers.get(table, []))

    async def publish(self, event: ChangeEvent) -> int:
        """Deliver to every subscriber; returns how many callbacks failed."""
        callbacks = list(self._subscribers.get(event.table, []))
        if event.table != ALL_TABLES:
            callbacks += self._subscribers.get(ALL_TABLES, [])

        failed = 0
        for callback in callbacks:
            try:
                result = callback(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                failed += 1
                logger.error(
                    "Change subscriber failed",
                    correlation_id=get_correlation_id(),
                    table=event.table,
                    kind=event.kind.value,
                    error=str(e),
                    exc_info=True
                )

        logger.debug(
            "Change event published",
            table=event.table,
            kind=event.kind.value,
            source=event.source,
            subscribers=len(callbacks),
            failed=failed
        )
        return failed


def parse_webhook_payload(body: Any) -> Optional[ChangeEvent]:
    """
    Convert a Supabase database-webhook body
    (`{"type", "table", "record", "old_record", "schema"}`) to a ChangeEvent.
    """
    if not isinstance(body, dict):
        return None
    table = body.get("table")
    kind = str(body.get("type", "")).upper()
    if not table or kind not in ChangeKind.__members__:
        return None
    return ChangeEvent(
        table=table,
        kind=ChangeKind(kind),
        record=body.get("record"),
        old_record=body.get("old_record"),
        source="webhook",
    )
