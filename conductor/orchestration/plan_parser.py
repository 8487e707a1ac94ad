from __future__ import annotations

import json
import re
from typing import Any, Mapping

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..core.errors import PlanDecodeError
from ..core.logging import get_logger
from ..core.metrics import increment_plan_fallback, record_plan_metrics
from ..schemas.tasks import Priority, Task, TaskStatus
from .registry import normalize_role

__all__ = [
    "FALLBACK_TASK_TITLE",
    "PlanParser",
    "PlanPayload",
    "PlanTaskPayload",
    "extract_payload",
    "task_id_for",
]

logger = get_logger(name=__name__)

FALLBACK_TASK_TITLE = "Complete objective"

_FENCE_PATTERN = re.compile(r"```(?:json)?\s*([\s\S]*?)```")


def task_id_for(index: int) -> str:
    """Return the id of the task declared at 1-based position ``index``."""
    return f"task-{index}"


def _coerce_dependency(value: Any) -> str:
    if isinstance(value, bool):
        raise ValueError("dependencies must be task ids")
    if isinstance(value, int):
        return task_id_for(value)
    if isinstance(value, str):
        trimmed = value.strip()
        if trimmed.isdigit():
            return task_id_for(int(trimmed))
        if trimmed:
            return trimmed
    raise ValueError("dependencies must be non-blank task ids")


class PlanTaskPayload(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    title: str | None = None
    description: str = Field(..., min_length=1)
    assign_to: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("assignTo", "assignedTo", "assign_to"),
    )
    dependencies: list[str] = Field(default_factory=list)
    priority: Priority = Field(default=Priority.MEDIUM)

    @field_validator("assign_to")
    @classmethod
    def _normalize_role(cls, value: str) -> str:
        return normalize_role(value)

    @field_validator("dependencies", mode="before")
    @classmethod
    def _coerce_dependencies(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if isinstance(value, (str, int)):
            value = [value]
        if not isinstance(value, (list, tuple)):
            raise ValueError("dependencies must be a list of task ids")
        ordered: list[str] = []
        for item in value:
            dependency = _coerce_dependency(item)
            if dependency not in ordered:
                ordered.append(dependency)
        return ordered

    @field_validator("priority", mode="before")
    @classmethod
    def _coerce_priority(cls, value: Any) -> Priority:
        if isinstance(value, str):
            try:
                return Priority(value.strip().lower())
            except ValueError:
                return Priority.MEDIUM
        if isinstance(value, Priority):
            return value
        return Priority.MEDIUM


class PlanPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    analysis: str | None = None
    tasks: list[PlanTaskPayload] = Field(..., min_length=1)
    workflow: str | None = None


def extract_payload(text: str) -> str:
    """Return the body of the first fenced block, or the whole text when there is none."""
    match = _FENCE_PATTERN.search(text)
    if match and match.group(1).strip():
        return match.group(1).strip()
    return text.strip()


def _reason_from_error(error: ValidationError) -> str:
    details = error.errors()
    if not details:
        return "unknown"
    first = details[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    err_type = first.get("type", "validation")
    reason = f"{location}:{err_type}" if location else err_type
    return reason.replace(":", "_").replace(" ", "_") or "unknown"


class PlanParser:
    """Turns raw decomposition output into validated tasks, never raising to the caller."""

    def __init__(self, *, default_role: str = "coder") -> None:
        self._default_role = normalize_role(default_role)

    def parse(self, raw_plan_text: str, fallback_objective: str) -> list[Task]:
        try:
            plan = self.decode(raw_plan_text)
        except PlanDecodeError as exc:
            return self._fallback(fallback_objective, reason=exc.reason, error=str(exc))

        tasks: list[Task] = []
        for index, entry in enumerate(plan.tasks, start=1):
            task_id = task_id_for(index)
            dependencies = [dep for dep in entry.dependencies if dep != task_id]
            if len(dependencies) != len(entry.dependencies):
                logger.warning("plan_self_dependency_dropped", task_id=task_id)
            tasks.append(
                Task(
                    id=task_id,
                    title=entry.title or f"Task {index}",
                    description=entry.description,
                    assigned_to=entry.assign_to,
                    priority=entry.priority,
                    dependencies=dependencies,
                    status=TaskStatus.PENDING,
                )
            )

        known = {task.id for task in tasks}
        for task in tasks:
            unknown = [dep for dep in task.dependencies if dep not in known]
            if unknown:
                logger.warning("plan_unknown_dependencies", task_id=task.id, dependencies=unknown)

        record_plan_metrics(status="parsed", tasks=len(tasks))
        logger.info(
            "plan_parsed",
            tasks=len(tasks),
            roles=sorted({task.assigned_to for task in tasks}),
            analysis=(plan.analysis or "")[:200],
        )
        return tasks

    def decode(self, raw_plan_text: str) -> PlanPayload:
        candidate = extract_payload(raw_plan_text or "")
        payload = _load_json(candidate)
        if isinstance(payload, list):
            payload = {"tasks": payload}
        if not isinstance(payload, Mapping):
            raise PlanDecodeError("Plan payload is not a JSON object", reason="not_an_object")
        try:
            return PlanPayload.model_validate(payload)
        except ValidationError as exc:
            raise PlanDecodeError("Plan payload failed validation", reason=_reason_from_error(exc)) from exc

    def _fallback(self, objective: str, *, reason: str, error: str) -> list[Task]:
        increment_plan_fallback(reason=reason)
        record_plan_metrics(status="fallback", tasks=1)
        logger.warning("plan_fallback", reason=reason, error=error)
        return [
            Task(
                id=task_id_for(1),
                title=FALLBACK_TASK_TITLE,
                description=objective,
                assigned_to=self._default_role,
                priority=Priority.HIGH,
                dependencies=[],
                status=TaskStatus.PENDING,
            )
        ]


def _load_json(text: str) -> Any:
    try:
        return json.loads(text)
    except RecursionError as exc:
        raise PlanDecodeError("Plan JSON is nested too deeply", reason="json_malformed") from exc
    except ValueError:
        start = text.find("{")
        end = text.rfind("}")
        if start == -1 or end == -1 or end <= start:
            raise PlanDecodeError("Plan response did not contain JSON", reason="json_missing") from None
        try:
            return json.loads(text[start : end + 1])
        except (ValueError, RecursionError) as exc:
            raise PlanDecodeError(f"Plan JSON is malformed: {exc}", reason="json_malformed") from exc
