"""Working-hours and lunch-break evaluation for agents."""

from datetime import datetime
from typing import Optional

from taskdesk.models.agent import Agent
from taskdesk.utils.logging import get_structured_logger
from taskdesk.utils.settings import SchedulerConfig

logger = get_structured_logger(__name__)

MINUTES_PER_DAY = 24 * 60


def parse_time(value: Optional[str]) -> int:
    """
    Parse an "HH:MM" (or "HH:MM:SS") string into minutes since midnight.

    Empty or malformed input parses to 0.
    """
    if not value:
        return 0
    parts = value.strip().split(":")
    if len(parts) < 2:
        return 0
    try:
        hours = int(parts[0])
        minutes = int(parts[1])
    except ValueError:
        return 0
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        return 0
    return hours * 60 + minutes


def current_time() -> datetime:
    """Evaluation instant in the configured scheduler timezone."""
    return datetime.now(SchedulerConfig.timezone())


def minutes_of_day(moment: datetime) -> int:
    """Wall-clock minutes since midnight; seconds are ignored."""
    return moment.hour * 60 + moment.minute


def in_window(now_minutes: int, start: int, end: int) -> bool:
    """Inclusive linear range check. A start after end never matches."""
    return start <= now_minutes <= end


def is_eligible_now(agent: Agent, now: Optional[datetime] = None) -> bool:
    """
    True when the agent is inside working hours, outside lunch, enabled
    and holds a role that receives work.

    Overnight schedules (work start after work end) are not supported and
    always evaluate to False.
    """
    if now is None:
        now = current_time()
    now_minutes = minutes_of_day(now)

    work_start = parse_time(agent.entrada_laboral)
    work_end = parse_time(agent.salida_laboral)
    lunch_start = parse_time(agent.entrada_horario_comida)
    lunch_end = parse_time(agent.salida_horario_comida)

    if work_start > work_end:
        logger.debug(
            "Overnight schedule is not supported",
            agent_id=agent.id,
            work_start=agent.entrada_laboral,
            work_end=agent.salida_laboral
        )

    in_lunch = in_window(now_minutes, lunch_start, lunch_end)
    in_work = in_window(now_minutes, work_start, work_end)

    return in_work and not in_lunch and agent.activo and agent.receives_work
