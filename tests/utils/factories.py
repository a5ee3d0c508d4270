"""Test data factories using Faker."""

import itertools
from datetime import datetime, timedelta
from typing import Optional

from faker import Faker

from taskdesk.models.agent import Agent, AgentRole
from taskdesk.models.task import Task, TaskStatus

fake = Faker()

BASE_TIME = datetime(2024, 12, 9, 8, 0, 0)

# Monday 10:00, inside the default 09-17 shift and before lunch.
AT_TEN = datetime(2024, 12, 9, 10, 0)
AT_LUNCH = datetime(2024, 12, 9, 13, 30)

_agent_ids = itertools.count(100)
_task_ids = itertools.count(1000)


def make_agent(
    agent_id: Optional[int] = None,
    work: tuple[str, str] = ("09:00", "17:00"),
    lunch: tuple[str, str] = ("13:00", "14:00"),
    activo: bool = True,
    role: AgentRole = AgentRole.AGENTE,
    available: bool = True,
    nombre: Optional[str] = None,
) -> Agent:
    """An agent on a 09-17 shift with lunch 13-14 unless overridden."""
    return Agent(
        id=agent_id if agent_id is not None else next(_agent_ids),
        nombre=nombre or fake.name(),
        email=fake.email(),
        entrada_laboral=work[0],
        salida_laboral=work[1],
        entrada_horario_comida=lunch[0],
        salida_horario_comida=lunch[1],
        activo=activo,
        tipo_perfil=role,
        available=available,
    )


def make_task(
    task_id: Optional[int] = None,
    assigned_to: Optional[int] = None,
    status: TaskStatus = TaskStatus.PENDING,
    created_at: Optional[datetime] = None,
    minutes: Optional[int] = None,
    description: Optional[str] = None,
    contador_reasignaciones: int = 0,
) -> Task:
    """A task; `minutes` offsets created_at from BASE_TIME."""
    if created_at is None:
        created_at = BASE_TIME + timedelta(minutes=minutes or 0)
    return Task(
        id=task_id if task_id is not None else next(_task_ids),
        description=description or fake.sentence(nb_words=4),
        assigned_to=assigned_to,
        status=status,
        created_at=created_at,
        contador_reasignaciones=contador_reasignaciones,
    )


def create_agent_row(**overrides) -> dict:
    """Raw agents-table row."""
    row = {
        "id": fake.random_int(min=1, max=9999),
        "nombre": fake.name(),
        "email": fake.email(),
        "entrada_laboral": "09:00",
        "salida_laboral": "17:00",
        "entrada_horario_comida": "13:00",
        "salida_horario_comida": "14:00",
        "activo": True,
        "tipo_perfil": "Agente",
    }
    row.update(overrides)
    return row


def create_task_row(**overrides) -> dict:
    """Raw tasks-table row."""
    row = {
        "id": fake.random_int(min=1, max=9999),
        "tarea": fake.sentence(nb_words=4),
        "agente": None,
        "activo": "3",
        "created_at": "2024-12-09T10:00:00+00:00",
        "ultima_reasignacion": None,
        "contador_reasignaciones": 0,
        "fecha_finalizacion": None,
    }
    row.update(overrides)
    return row
