"""Background reconciliation: drain the pending queue on changes and on a timer."""

import asyncio
from typing import Callable, Optional

from taskdesk.services.change_feed import ChangeEvent
from taskdesk.services.scheduler import SchedulerSession
from taskdesk.utils.logging import get_structured_logger, timed
from taskdesk.utils.settings import SchedulerConfig

logger = get_structured_logger(__name__)


class Reconciler:
    """
    Coalesces change events into drain-until-stable runs and repeats a
    run every refresh interval.

    Events that arrive while a run is in progress schedule one more run
    after it finishes.
    """

    def __init__(
        self,
        session: SchedulerSession,
        debounce_seconds: Optional[float] = None,
        interval_seconds: Optional[float] = None,
    ):
        self.session = session
        self.debounce_seconds = (
            SchedulerConfig.SCHEDULER_DEBOUNCE_SECONDS if debounce_seconds is None else debounce_seconds
        )
        self.interval_seconds = (
            SchedulerConfig.SCHEDULER_REFRESH_INTERVAL_SECONDS if interval_seconds is None else interval_seconds
        )
        self.runs = 0
        self._timer: Optional[asyncio.Task] = None
        self._periodic: Optional[asyncio.Task] = None
        self._running = False
        self._dirty = False
        self._unsubscribers: list[Callable[[], None]] = []

    @property
    def started(self) -> bool:
        return bool(self._unsubscribers)

    def start(self, tables: Optional[list[str]] = None) -> None:
        """Subscribe to the feed and start the periodic refresh."""
        if self.started:
            return
        tables = tables or [SchedulerConfig.AGENTS_TABLE, self.session.tasks_table]
        for table in tables:
            self._unsubscribers.append(self.session.feed.subscribe(table, self.notify))
        if self.interval_seconds > 0:
            self._periodic = asyncio.create_task(self._refresh_loop())
        logger.info(
            "Reconciler started",
            tables=tables,
            debounce_seconds=self.debounce_seconds,
            interval_seconds=self.interval_seconds
        )

    async def stop(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        for task in (self._timer, self._periodic):
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._timer = None
        self._periodic = None
        logger.info("Reconciler stopped", runs=self.runs)

    def notify(self, event: ChangeEvent) -> None:
        """Feed callback: schedule a run after the debounce window."""
        if self._running:
            self._dirty = True
            return
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = asyncio.create_task(self._run_after_delay())
        logger.debug(
            "Reconciliation scheduled",
            table=event.table,
            kind=event.kind.value,
            source=event.source
        )

    async def _run_after_delay(self) -> None:
        await asyncio.sleep(self.debounce_seconds)
        await self.run()

    async def _refresh_loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            await self.run()

    @timed("reconcile")
    async def run(self) -> int:
        """Drain until stable now. Errors are logged; the next trigger retries."""
        self._running = True
        self._dirty = False
        assigned = 0
        try:
            assigned = await self.session.drain_until_stable()
        except Exception as e:
            logger.error("Reconciliation failed", error=str(e), exc_info=True)
        finally:
            self._running = False
            self.runs += 1

        if assigned:
            logger.info("Reconciliation assigned pending tasks", assigned=assigned)
        if self._dirty:
            self._dirty = False
            self._timer = asyncio.create_task(self._run_after_delay())
        return assigned
