from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AgentRole(str, Enum):
    CONDUCTOR = "conductor"
    CODER = "coder"
    REVIEWER = "reviewer"
    ARCHITECT = "architect"
    RESEARCHER = "researcher"


class Priority(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Lower rank sorts first."""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    Priority.CRITICAL: 0,
    Priority.HIGH: 1,
    Priority.MEDIUM: 2,
    Priority.LOW: 3,
}


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    BLOCKED = "blocked"


FINISHED_STATUSES = frozenset({TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.BLOCKED})


class SessionStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"


class MessageType(str, Enum):
    TASK = "task"
    RESULT = "result"
    QUERY = "query"
    FEEDBACK = "feedback"


class Task(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(..., min_length=1)
    title: str
    description: str
    assigned_to: str = Field(..., min_length=1, description="Role identifier of the capability provider.")
    status: TaskStatus = Field(default=TaskStatus.PENDING)
    priority: Priority = Field(default=Priority.MEDIUM)
    dependencies: list[str] = Field(default_factory=list)
    result: str | None = None
    attempts: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=_utcnow)
    completed_at: datetime | None = None

    @property
    def is_finished(self) -> bool:
        return self.status in FINISHED_STATUSES


class AgentMessage(BaseModel):
    id: str = Field(default_factory=lambda: uuid4().hex)
    sender: str
    recipient: str
    type: MessageType
    content: str
    metadata: dict[str, Any] | None = None
    timestamp: datetime = Field(default_factory=_utcnow)


class Session(BaseModel):
    id: str = Field(default_factory=lambda: uuid4().hex)
    objective: str = Field(..., min_length=1)
    tasks: list[Task] = Field(default_factory=list)
    messages: list[AgentMessage] = Field(default_factory=list)
    status: SessionStatus = Field(default=SessionStatus.ACTIVE)
    result: str | None = None
    deadlocked: bool = False
    started_at: datetime = Field(default_factory=_utcnow)
    completed_at: datetime | None = None

    def get_task(self, task_id: str) -> Task | None:
        return next((task for task in self.tasks if task.id == task_id), None)

    def tasks_with_status(self, status: TaskStatus) -> list[Task]:
        return [task for task in self.tasks if task.status == status]

    def record_message(
        self,
        *,
        sender: str,
        recipient: str,
        type: MessageType,
        content: str,
        metadata: dict[str, Any] | None = None,
    ) -> AgentMessage:
        message = AgentMessage(
            sender=sender,
            recipient=recipient,
            type=type,
            content=content,
            metadata=metadata,
        )
        self.messages.append(message)
        return message

    def mark_completed(self) -> None:
        if self.status == SessionStatus.COMPLETED:
            raise RuntimeError(f"Session {self.id} is already completed")
        self.status = SessionStatus.COMPLETED
        self.completed_at = _utcnow()

    @property
    def duration_seconds(self) -> float | None:
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()


PreferredRole = Literal["coder", "reviewer", "architect", "researcher"]


class TaskInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    objective: str = Field(..., min_length=1, description="Objective to decompose and execute.")
    context: str | None = None
    constraints: list[str] = Field(default_factory=list)
    preferred_roles: list[PreferredRole] = Field(default_factory=list)

    @field_validator("constraints", "preferred_roles", mode="before")
    @classmethod
    def _coerce_list(cls, value: Any) -> list[Any]:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return list(value)
