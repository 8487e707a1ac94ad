from __future__ import annotations

from ..schemas.tasks import AgentRole
from ..services.llm import LLMService
from .base import LLMAgent

REVIEWER_SYSTEM_PROMPT = (
    "You are the REVIEWER agent of a multi-agent engineering team. Review code for correctness, "
    "security, performance, readability and test coverage. Group findings by severity (critical, "
    "major, minor), point at the exact location, and propose a concrete fix for each finding. "
    "Finish with an overall verdict: approve, approve with changes, or request changes."
)

REVIEWER_CAPABILITIES = (
    "Review code for bugs and logic errors",
    "Audit code for security vulnerabilities",
    "Check adherence to best practices",
    "Assess performance characteristics",
    "Suggest improvements",
)


class ReviewerAgent(LLMAgent):
    @classmethod
    def build(cls, llm: LLMService) -> "ReviewerAgent":
        return cls(
            role=AgentRole.REVIEWER.value,
            name="Reviewer",
            system_prompt=REVIEWER_SYSTEM_PROMPT,
            llm=llm,
            capabilities=REVIEWER_CAPABILITIES,
        )

    async def review_code(self, code: str, context: str | None = None) -> str:
        prompt = f"Review the following code:\n```\n{code}\n```"
        if context:
            prompt += f"\n\nContext: {context}"
        return await self.think(prompt)

    async def security_audit(self, code: str) -> str:
        return await self.think(
            "Perform a security audit of this code. Focus on injection, authentication, "
            f"data exposure and unsafe input handling:\n```\n{code}\n```"
        )

    async def suggest_improvements(self, code: str) -> str:
        return await self.think(f"Suggest prioritized improvements for this code:\n```\n{code}\n```")
