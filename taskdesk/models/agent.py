"""Agent model - people who receive tasks, and the dispatchers who hand them out."""

from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field


class AgentRole(str, Enum):
    """Profile types (tipo_perfil)."""
    AGENTE = "Agente"
    MESA = "Mesa"


# Every role must appear here; a new role without an entry fails loudly.
_RECEIVES_WORK = {
    AgentRole.AGENTE: True,
    AgentRole.MESA: False,
}


def role_receives_work(role: AgentRole) -> bool:
    """Whether agents with this role can be assigned tasks."""
    try:
        return _RECEIVES_WORK[role]
    except KeyError:
        raise ValueError(f"Unhandled agent role: {role!r}") from None


class Agent(BaseModel):
    """Agent row from the agents table plus the derived availability flag."""
    id: int = Field(..., description="Agent ID")
    nombre: str = Field(default="", description="Display name")
    email: Optional[str] = Field(None, description="Login e-mail")
    entrada_laboral: str = Field(default="", description="Work start, HH:MM")
    salida_laboral: str = Field(default="", description="Work end, HH:MM")
    entrada_horario_comida: str = Field(default="", description="Lunch start, HH:MM")
    salida_horario_comida: str = Field(default="", description="Lunch end, HH:MM")
    activo: bool = Field(default=True, description="Enabled for receiving work")
    tipo_perfil: AgentRole = Field(default=AgentRole.AGENTE, description="Profile type: Agente or Mesa")
    available: bool = Field(
        default=True,
        description="Derived: no task currently active for this agent. Never persisted."
    )

    @property
    def receives_work(self) -> bool:
        return role_receives_work(self.tipo_perfil)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Agent":
        """Build an agent from a raw agents-table row."""
        return cls(
            id=int(row["id"]),
            nombre=row.get("nombre") or "",
            email=row.get("email"),
            entrada_laboral=row.get("entrada_laboral") or "",
            salida_laboral=row.get("salida_laboral") or "",
            entrada_horario_comida=row.get("entrada_horario_comida") or "",
            salida_horario_comida=row.get("salida_horario_comida") or "",
            activo=bool(row.get("activo")),
            tipo_perfil=row.get("tipo_perfil") or AgentRole.AGENTE,
        )
