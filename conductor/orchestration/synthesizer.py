from __future__ import annotations

from ..agents.base import CapabilityProvider
from ..core.logging import get_logger
from ..schemas.tasks import Session, TaskStatus

logger = get_logger(name=__name__)


def render_completed_results(session: Session) -> str:
    """Label each completed task's result with its title, in declaration order."""
    return "\n\n".join(
        f"### {task.title}\n{task.result}"
        for task in session.tasks
        if task.status == TaskStatus.COMPLETED
    )


def build_synthesis_prompt(results: str) -> str:
    return (
        "Synthesize these task results into a coherent final deliverable:\n\n"
        f"{results}\n\n"
        "Provide a summary and any final recommendations."
    )


class ResultSynthesizer:
    def __init__(self, provider: CapabilityProvider) -> None:
        self._provider = provider

    async def synthesize(self, session: Session) -> str:
        results = render_completed_results(session)
        completed = len(session.tasks_with_status(TaskStatus.COMPLETED))
        logger.info("synthesis_started", session_id=session.id, completed_tasks=completed)
        output = await self._provider.invoke(build_synthesis_prompt(results))
        logger.info("synthesis_completed", session_id=session.id, characters=len(output))
        return output
