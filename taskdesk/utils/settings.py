"""Scheduler configuration read from environment variables."""

import os
import logging
from datetime import tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

SELECTION_STRATEGIES = ("rotation", "least_loaded")


def _float_env(name: str, default: str) -> float:
    raw = os.environ.get(name, default)
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Invalid value for {name}: {raw!r}, using {default}")
        return float(default)


class SchedulerConfig:
    """Scheduler and store settings."""

    SCHEDULER_TIMEZONE = os.environ.get("SCHEDULER_TIMEZONE", "").strip()
    SCHEDULER_SELECTION_STRATEGY = os.environ.get("SCHEDULER_SELECTION_STRATEGY", "rotation").strip().lower()
    SCHEDULER_REFRESH_INTERVAL_SECONDS = _float_env("SCHEDULER_REFRESH_INTERVAL_SECONDS", "30")
    SCHEDULER_DEBOUNCE_SECONDS = _float_env("SCHEDULER_DEBOUNCE_SECONDS", "0.5")
    SCHEDULER_MAX_DRAIN_PASSES = int(_float_env("SCHEDULER_MAX_DRAIN_PASSES", "50"))

    AGENTS_TABLE = os.environ.get("AGENTS_TABLE", "agentes")
    TASKS_TABLE = os.environ.get("TASKS_TABLE", "tarea")

    @classmethod
    def timezone(cls) -> Optional[tzinfo]:
        """Zone for wall-clock evaluation, or None for process local time."""
        if not cls.SCHEDULER_TIMEZONE:
            return None
        try:
            return ZoneInfo(cls.SCHEDULER_TIMEZONE)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f"Unknown SCHEDULER_TIMEZONE {cls.SCHEDULER_TIMEZONE!r}, using local time")
            return None

    @classmethod
    def selection_strategy(cls) -> str:
        if cls.SCHEDULER_SELECTION_STRATEGY not in SELECTION_STRATEGIES:
            logger.warning(
                f"Unknown SCHEDULER_SELECTION_STRATEGY {cls.SCHEDULER_SELECTION_STRATEGY!r}, using rotation"
            )
            return "rotation"
        return cls.SCHEDULER_SELECTION_STRATEGY
