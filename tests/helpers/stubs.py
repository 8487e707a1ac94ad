from __future__ import annotations

import asyncio
import json
from typing import Any, Callable, Iterable, Sequence

from langchain_core.messages import AIMessage, BaseMessage

from conductor.core.config import OrchestratorSettings, Settings
from conductor.core.errors import ProviderError
from conductor.schemas.tasks import Task


class ScriptedProvider:
    """Capability provider that replays scripted outcomes and records every call."""

    def __init__(
        self,
        role: str,
        outcomes: Iterable[str | BaseException] | None = None,
        *,
        default: str | None = None,
        delay: float = 0.0,
        journal: list[tuple[str, str, str]] | None = None,
        on_invoke: Callable[[str], None] | None = None,
    ) -> None:
        self.role = role
        self._outcomes = list(outcomes or [])
        self._default = default
        self._delay = delay
        self.calls: list[str] = []
        self.journal = journal if journal is not None else []
        self._on_invoke = on_invoke
        self.active = 0
        self.max_active = 0

    async def invoke(self, instruction: str) -> str:
        self.calls.append(instruction)
        self.journal.append(("start", self.role, instruction))
        if self._on_invoke is not None:
            self._on_invoke(instruction)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self._delay:
                await asyncio.sleep(self._delay)
            outcome: str | BaseException
            if self._outcomes:
                outcome = self._outcomes.pop(0)
            elif self._default is not None:
                outcome = self._default
            else:
                outcome = f"{self.role} result for: {instruction.splitlines()[0]}"
            if isinstance(outcome, BaseException):
                raise outcome
            return outcome
        finally:
            self.active -= 1
            self.journal.append(("end", self.role, instruction))


class StubDecomposer:
    def __init__(self, raw_plan: str | BaseException) -> None:
        self._raw_plan = raw_plan
        self.calls: list[dict[str, Any]] = []

    async def decompose(
        self,
        objective: str,
        context: str | None = None,
        constraints: Sequence[str] | None = None,
        preferred_roles: Sequence[str] | None = None,
    ) -> str:
        self.calls.append(
            {
                "objective": objective,
                "context": context,
                "constraints": list(constraints or []),
                "preferred_roles": list(preferred_roles or []),
            }
        )
        if isinstance(self._raw_plan, BaseException):
            raise self._raw_plan
        return self._raw_plan


class FakeChatClient:
    """Stands in for a LangChain chat model."""

    def __init__(self, replies: Iterable[str | BaseException] | None = None, *, delay: float = 0.0) -> None:
        self._replies = list(replies or [])
        self._delay = delay
        self.received: list[list[BaseMessage]] = []

    async def ainvoke(self, messages: Sequence[BaseMessage]) -> AIMessage:
        self.received.append(list(messages))
        reply: str | BaseException = self._replies.pop(0) if self._replies else "ok"
        if self._delay:
            await asyncio.sleep(self._delay)
        if isinstance(reply, BaseException):
            raise reply
        return AIMessage(content=reply)


def plan_json(*tasks: dict[str, Any], fenced: bool = True) -> str:
    body = json.dumps({"analysis": "test plan", "tasks": list(tasks), "workflow": "in order"}, indent=2)
    if fenced:
        return f"Here is the plan:\n```json\n{body}\n```\nLet me know."
    return body


def make_task(
    task_id: str,
    *,
    role: str = "coder",
    dependencies: Sequence[str] = (),
    title: str | None = None,
    priority: str = "medium",
) -> Task:
    return Task(
        id=task_id,
        title=title or task_id.upper(),
        description=f"Do {task_id}",
        assigned_to=role,
        dependencies=list(dependencies),
        priority=priority,
    )


def make_settings(**orchestrator: Any) -> Settings:
    return Settings(environment="test", orchestrator=OrchestratorSettings(**orchestrator))


def provider_error(message: str = "boom") -> ProviderError:
    return ProviderError(message)
