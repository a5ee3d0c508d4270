"""Task models."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field


class TaskStatus(str, Enum):
    """Task lifecycle status."""
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.CANCELLED)

    @property
    def db_code(self) -> str:
        """Value stored in the tasks table `activo` column."""
        return _STATUS_TO_CODE[self]

    @classmethod
    def from_db_code(cls, code: Any) -> "TaskStatus":
        # Unknown codes read as completed, matching how rows were always displayed.
        return _CODE_TO_STATUS.get(str(code) if code is not None else "0", cls.COMPLETED)


_STATUS_TO_CODE = {
    TaskStatus.COMPLETED: "0",
    TaskStatus.ACTIVE: "1",
    TaskStatus.CANCELLED: "2",
    TaskStatus.PENDING: "3",
}
_CODE_TO_STATUS = {code: status for status, code in _STATUS_TO_CODE.items()}


class AssignmentMode(str, Enum):
    """Who picks the agent."""
    AUTO = "auto"
    MANUAL = "manual"


class AssignmentType(str, Enum):
    """Whether the task goes straight to work or into the agent's queue."""
    AVAILABILITY = "availability"
    DIRECT = "direct"


class Task(BaseModel):
    """Task row from the tasks table."""
    id: int = Field(..., description="Task ID")
    description: str = Field(default="", description="Task description")
    assigned_to: Optional[int] = Field(None, description="Assigned agent ID, None for the general pool")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="pending, active, completed, cancelled")
    created_at: datetime = Field(..., description="Creation timestamp, defines FIFO order")
    ultima_reasignacion: Optional[datetime] = Field(None, description="Last reassignment")
    contador_reasignaciones: int = Field(default=0, ge=0, description="Reassignment counter")
    fecha_finalizacion: Optional[datetime] = Field(None, description="Completion/cancellation timestamp")

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Task":
        """Build a task from a raw tasks-table row."""
        agent = row.get("agente")
        return cls(
            id=int(row["id"]),
            description=row.get("tarea") or "",
            assigned_to=int(agent) if agent not in (None, "") else None,
            status=TaskStatus.from_db_code(row.get("activo")),
            created_at=row["created_at"],
            ultima_reasignacion=row.get("ultima_reasignacion"),
            contador_reasignaciones=row.get("contador_reasignaciones") or 0,
            fecha_finalizacion=row.get("fecha_finalizacion"),
        )
