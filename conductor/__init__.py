"""Conductor - task graph orchestration for specialized agents."""

from .core.errors import ConductorError, PlanDecodeError, ProviderError, UnknownRoleError
from .orchestration import Orchestrator
from .schemas.tasks import AgentMessage, AgentRole, Priority, Session, SessionStatus, Task, TaskStatus

__version__ = "0.1.0"

__all__ = [
    "AgentMessage",
    "AgentRole",
    "ConductorError",
    "Orchestrator",
    "PlanDecodeError",
    "Priority",
    "ProviderError",
    "Session",
    "SessionStatus",
    "Task",
    "TaskStatus",
    "UnknownRoleError",
]
