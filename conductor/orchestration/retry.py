from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Sequence

from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential, wait_none

from ..agents.base import CapabilityProvider
from ..core.config import OrchestratorSettings
from ..core.errors import ProviderError, UnknownRoleError
from ..core.logging import get_logger
from ..core.metrics import increment_task_event, observe_provider_latency
from ..schemas.tasks import AgentRole, MessageType, Session, Task, TaskStatus
from .registry import CapabilityRegistry

logger = get_logger(name=__name__)

CONTEXT_HEADER = "Context from previous tasks:"


@dataclass(slots=True)
class RetryPolicy:
    auto_retry: bool
    max_retries: int
    base_backoff_seconds: float = 0.0
    backoff_multiplier: float = 2.0
    max_backoff_seconds: float = 30.0
    timeout_seconds: float | None = None

    @classmethod
    def from_settings(cls, settings: OrchestratorSettings) -> "RetryPolicy":
        return cls(
            auto_retry=settings.auto_retry,
            max_retries=settings.max_retries,
            base_backoff_seconds=settings.retry_backoff_seconds,
            backoff_multiplier=settings.retry_backoff_multiplier,
            max_backoff_seconds=settings.retry_max_backoff_seconds,
            timeout_seconds=settings.task_timeout_seconds,
        )

    @property
    def max_attempts(self) -> int:
        if not self.auto_retry:
            return 1
        return max(0, self.max_retries) + 1

    def wait_strategy(self):
        if self.base_backoff_seconds <= 0:
            return wait_none()
        return wait_exponential(
            multiplier=self.base_backoff_seconds,
            exp_base=max(1.0, self.backoff_multiplier),
            max=self.max_backoff_seconds if self.max_backoff_seconds > 0 else float("inf"),
        )


def build_task_input(task: Task, tasks: Sequence[Task]) -> str:
    """Description plus the results of the task's completed declared dependencies."""
    dependencies = set(task.dependencies)
    sections = [
        f"[{candidate.title}]: {candidate.result}"
        for candidate in tasks
        if candidate.id in dependencies and candidate.status == TaskStatus.COMPLETED
    ]
    if not sections:
        return task.description
    context = "\n\n".join(sections)
    return f"{task.description}\n\n{CONTEXT_HEADER}\n{context}"


class TaskRunner:
    """Runs a single task against its provider with a bounded retry budget."""

    def __init__(self, registry: CapabilityRegistry, policy: RetryPolicy) -> None:
        self._registry = registry
        self._policy = policy

    async def run(self, task: Task, session: Session) -> None:
        task.status = TaskStatus.IN_PROGRESS
        role = task.assigned_to
        logger.info("task_started", task_id=task.id, title=task.title, role=role)
        increment_task_event(role=role, event="started")

        try:
            provider = self._registry.require(role)
        except UnknownRoleError as exc:
            task.status = TaskStatus.FAILED
            increment_task_event(role=role, event="failed")
            logger.error("task_unknown_role", task_id=task.id, role=exc.role)
            return

        instruction = build_task_input(task, session.tasks)
        try:
            result = await self._invoke_with_retry(task, provider, instruction)
        except ProviderError as exc:
            task.status = TaskStatus.FAILED
            increment_task_event(role=role, event="failed")
            logger.error(
                "task_failed",
                task_id=task.id,
                title=task.title,
                role=role,
                attempts=task.attempts,
                error=str(exc),
            )
            return

        task.result = result
        task.status = TaskStatus.COMPLETED
        task.completed_at = datetime.now(timezone.utc)
        session.record_message(
            sender=role,
            recipient=AgentRole.CONDUCTOR.value,
            type=MessageType.RESULT,
            content=result,
            metadata={"task_id": task.id, "attempts": task.attempts},
        )
        increment_task_event(role=role, event="completed")
        logger.info("task_completed", task_id=task.id, title=task.title, role=role, attempts=task.attempts)

    async def _invoke_with_retry(self, task: Task, provider: CapabilityProvider, instruction: str) -> str:
        policy = self._policy
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(policy.max_attempts),
            wait=policy.wait_strategy(),
            retry=retry_if_exception_type(ProviderError),
            reraise=True,
        ):
            with attempt:
                attempt_number = attempt.retry_state.attempt_number
                if attempt_number > 1:
                    task.status = TaskStatus.PENDING
                    increment_task_event(role=task.assigned_to, event="retried")
                    logger.info("task_retrying", task_id=task.id, title=task.title, attempt=attempt_number)
                    task.status = TaskStatus.IN_PROGRESS
                task.attempts = attempt_number
                try:
                    return await self._invoke(task, provider, instruction)
                except ProviderError:
                    task.status = TaskStatus.FAILED
                    raise
        raise ProviderError(f"Task {task.id} exhausted its retry budget", role=task.assigned_to)

    async def _invoke(self, task: Task, provider: CapabilityProvider, instruction: str) -> str:
        started = time.perf_counter()
        timeout = self._policy.timeout_seconds
        try:
            if timeout is not None:
                return await asyncio.wait_for(provider.invoke(instruction), timeout=timeout)
            return await provider.invoke(instruction)
        except ProviderError:
            raise
        except asyncio.TimeoutError as exc:
            logger.warning("task_invocation_timeout", task_id=task.id, timeout=timeout)
            raise ProviderError(
                f"Provider for {task.assigned_to} timed out after {timeout}s",
                role=task.assigned_to,
            ) from exc
        except Exception as exc:
            logger.exception("task_invocation_error", task_id=task.id, role=task.assigned_to)
            raise ProviderError(str(exc) or type(exc).__name__, role=task.assigned_to) from exc
        finally:
            observe_provider_latency(role=task.assigned_to, latency=time.perf_counter() - started)
