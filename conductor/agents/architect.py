from __future__ import annotations

from ..schemas.tasks import AgentRole
from ..services.llm import LLMService
from .base import LLMAgent

ARCHITECT_SYSTEM_PROMPT = (
    "You are the ARCHITECT agent of a multi-agent engineering team. Design systems and make "
    "technical decisions: define components and their responsibilities, interfaces, data flow and "
    "failure handling. State the trade-offs of every significant choice and the alternatives you "
    "rejected. Produce designs the CODER agent can implement directly."
)

ARCHITECT_CAPABILITIES = (
    "Design system architecture",
    "Define component interfaces",
    "Evaluate technical trade-offs",
    "Plan migrations",
    "Select technologies",
)


class ArchitectAgent(LLMAgent):
    @classmethod
    def build(cls, llm: LLMService) -> "ArchitectAgent":
        return cls(
            role=AgentRole.ARCHITECT.value,
            name="Architect",
            system_prompt=ARCHITECT_SYSTEM_PROMPT,
            llm=llm,
            capabilities=ARCHITECT_CAPABILITIES,
        )

    async def design_system(self, requirements: str) -> str:
        return await self.think(f"Design a system that satisfies these requirements:\n\n{requirements}")

    async def evaluate_tradeoffs(self, options: list[str], context: str) -> str:
        listed = "\n".join(f"- {option}" for option in options)
        return await self.think(f"Evaluate these options:\n{listed}\n\nContext: {context}")

    async def plan_migration(self, current_state: str, target_state: str) -> str:
        return await self.think(
            f"Plan an incremental migration.\n\nCurrent state:\n{current_state}\n\nTarget state:\n{target_state}"
        )
