from __future__ import annotations

from ..schemas.tasks import AgentRole
from ..services.llm import LLMService
from .base import LLMAgent

CODER_SYSTEM_PROMPT = (
    "You are the CODER agent of a multi-agent engineering team. Write complete, runnable, "
    "production-quality code with the imports it needs and proper error handling. Keep functions "
    "small and names meaningful, handle edge cases, and close with a short note on key decisions "
    "and any assumptions you made."
)

CODER_CAPABILITIES = (
    "Write new code from specifications",
    "Implement features and functionality",
    "Fix bugs and issues",
    "Refactor existing code",
    "Create unit tests",
    "Optimize performance",
)


class CoderAgent(LLMAgent):
    @classmethod
    def build(cls, llm: LLMService) -> "CoderAgent":
        return cls(
            role=AgentRole.CODER.value,
            name="Coder",
            system_prompt=CODER_SYSTEM_PROMPT,
            llm=llm,
            capabilities=CODER_CAPABILITIES,
        )

    async def write_code(self, specification: str) -> str:
        return await self.think(f"Write code for the following specification:\n\n{specification}")

    async def fix_bug(self, bug_description: str, relevant_code: str) -> str:
        return await self.think(
            f"Fix the following bug:\n\nBug Description: {bug_description}\n\n"
            f"Relevant Code:\n```\n{relevant_code}\n```"
        )

    async def refactor(self, code: str, goals: str) -> str:
        return await self.think(f"Refactor this code.\n\nGoals: {goals}\n\nCode:\n```\n{code}\n```")

    async def write_tests(self, code: str) -> str:
        return await self.think(f"Write unit tests covering this code, including edge cases:\n```\n{code}\n```")
