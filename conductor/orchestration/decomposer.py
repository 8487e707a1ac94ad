from __future__ import annotations

from typing import Protocol, Sequence

from ..agents.base import ConversationHistory
from ..core.errors import ProviderError
from ..core.logging import get_logger
from ..services.llm import LLMService, LLMServiceError

logger = get_logger(name=__name__)

CONDUCTOR_SYSTEM_PROMPT = """You are the CONDUCTOR of a multi-agent software engineering team.

You coordinate specialized agents:
- coder: writes production-quality code
- reviewer: reviews code for quality, security and best practices
- architect: designs systems and makes technical decisions

Break the objective into tasks, assign each task to the most suitable agent and
declare which earlier tasks it depends on. Task ids are "task-<n>", numbered from 1
in the order the tasks are listed.

Respond with JSON only, in this format:
{
  "analysis": "Brief analysis of the objective",
  "tasks": [
    {
      "title": "Task title",
      "description": "What needs to be done",
      "assignTo": "coder|reviewer|architect",
      "dependencies": ["task-1"],
      "priority": "critical|high|medium|low"
    }
  ],
  "workflow": "How the tasks connect"
}"""


class Decomposer(Protocol):
    async def decompose(
        self,
        objective: str,
        context: str | None = None,
        constraints: Sequence[str] | None = None,
        preferred_roles: Sequence[str] | None = None,
    ) -> str:
        ...


def build_decomposition_prompt(
    objective: str,
    context: str | None = None,
    constraints: Sequence[str] | None = None,
    preferred_roles: Sequence[str] | None = None,
) -> str:
    lines = ["Analyze this objective and create a task plan:", "", f"OBJECTIVE: {objective}"]
    if context:
        lines.append(f"CONTEXT: {context}")
    if constraints:
        lines.append(f"CONSTRAINTS: {', '.join(constraints)}")
    if preferred_roles:
        lines.append(f"PREFERRED AGENTS: {', '.join(str(role) for role in preferred_roles)}")
    lines.extend(["", "Respond with a JSON task plan following the format specified."])
    return "\n".join(lines)


class PlanGenerator:
    """LLM-backed decomposition of an objective into a raw JSON plan."""

    def __init__(
        self,
        llm: LLMService,
        *,
        system_prompt: str = CONDUCTOR_SYSTEM_PROMPT,
        history: ConversationHistory | None = None,
    ) -> None:
        self._llm = llm
        self._system_prompt = system_prompt
        self._history = history if history is not None else ConversationHistory()

    @property
    def history(self) -> ConversationHistory:
        return self._history

    async def decompose(
        self,
        objective: str,
        context: str | None = None,
        constraints: Sequence[str] | None = None,
        preferred_roles: Sequence[str] | None = None,
    ) -> str:
        prompt = build_decomposition_prompt(objective, context, constraints, preferred_roles)
        self._history.append("user", prompt)
        try:
            response = await self._llm.chat(self._history.snapshot(), system_prompt=self._system_prompt)
        except LLMServiceError as exc:
            self._history.turns.pop()
            raise ProviderError(f"Plan generation failed: {exc}", role="conductor") from exc
        self._history.append("assistant", response)
        logger.debug("plan_generated", characters=len(response))
        return response
