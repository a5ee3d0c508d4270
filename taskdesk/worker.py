"""Long-running reconciliation worker."""

import asyncio
import signal

from taskdesk.services.reconciler import Reconciler
from taskdesk.services.scheduler import get_scheduler_session
from taskdesk.utils.logging import get_structured_logger
from taskdesk.utils.logging_config import LoggingConfig

logger = get_structured_logger(__name__)


async def run_worker(stop_event: asyncio.Event) -> None:
    session = get_scheduler_session()
    reconciler = Reconciler(session)
    reconciler.start()
    try:
        await reconciler.run()
        await stop_event.wait()
    finally:
        await reconciler.stop()


def main() -> None:
    LoggingConfig.setup_logging()
    logger.info("Starting reconciliation worker")

    async def _main():
        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, stop_event.set)
            except NotImplementedError:
                pass
        await run_worker(stop_event)

    asyncio.run(_main())


if __name__ == "__main__":
    main()
