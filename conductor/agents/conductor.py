from __future__ import annotations

from ..schemas.tasks import AgentRole
from ..services.llm import LLMService
from .base import LLMAgent

SYNTHESIS_SYSTEM_PROMPT = (
    "You are synthesizing results from multiple AI agents. Create a coherent summary."
)


class ConductorAgent(LLMAgent):
    """Provider used for the final synthesis step; never registered for graph tasks."""

    @classmethod
    def build(cls, llm: LLMService) -> "ConductorAgent":
        return cls(
            role=AgentRole.CONDUCTOR.value,
            name="Conductor",
            system_prompt=SYNTHESIS_SYSTEM_PROMPT,
            llm=llm,
            capabilities=("Synthesize agent results into a final deliverable",),
        )

    async def invoke(self, instruction: str) -> str:
        # each synthesis stands alone
        self.clear_history()
        return await self.think(instruction)
