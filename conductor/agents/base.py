from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Literal, Protocol, runtime_checkable

from ..core.errors import ProviderError
from ..core.logging import get_logger
from ..schemas.tasks import AgentMessage
from ..services.llm import LLMService, LLMServiceError

logger = get_logger(name=__name__)

TurnRole = Literal["user", "assistant"]


@runtime_checkable
class CapabilityProvider(Protocol):
    role: str

    async def invoke(self, instruction: str) -> str:
        ...


@dataclass
class ConversationHistory:
    """Multi-turn memory owned by a single provider (or handed in by a caller)."""

    turns: list[tuple[TurnRole, str]] = field(default_factory=list)

    def append(self, role: TurnRole, content: str) -> None:
        self.turns.append((role, content))

    def clear(self) -> None:
        self.turns.clear()

    def discard(self, turn: tuple[TurnRole, str]) -> None:
        """Remove ``turn`` itself, not merely an equal entry appended later."""
        for index in range(len(self.turns) - 1, -1, -1):
            if self.turns[index] is turn:
                del self.turns[index]
                return

    def snapshot(self) -> list[tuple[TurnRole, str]]:
        return list(self.turns)

    def __len__(self) -> int:
        return len(self.turns)


@dataclass
class LLMAgent:
    role: str
    name: str
    system_prompt: str
    llm: LLMService
    history: ConversationHistory = field(default_factory=ConversationHistory)
    capabilities: tuple[str, ...] = ()
    _lock: asyncio.Lock | None = field(default=None, init=False, repr=False, compare=False)
    _lock_loop: asyncio.AbstractEventLoop | None = field(default=None, init=False, repr=False, compare=False)

    async def think(self, prompt: str, *, history: ConversationHistory | None = None) -> str:
        """Send ``prompt`` through the model, recording both turns in the history buffer.

        A caller-supplied ``history`` replaces the agent's own buffer for this call.
        The user turn is dropped again when the model fails so a retry starts clean.
        Calls sharing the agent's own buffer run one at a time so concurrent tasks
        for the same role never see each other's turns.
        """
        if history is not None:
            return await self._exchange(history, prompt)
        async with self._history_lock():
            return await self._exchange(self.history, prompt)

    def _history_lock(self) -> asyncio.Lock:
        # asyncio locks bind to the loop that first waits on them
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    async def _exchange(self, buffer: ConversationHistory, prompt: str) -> str:
        logger.info("agent_processing", agent=self.name, role=self.role, preview=prompt[:50])
        turn: tuple[TurnRole, str] = ("user", prompt)
        buffer.turns.append(turn)
        try:
            reply = await self.llm.chat(buffer.snapshot(), system_prompt=self.system_prompt)
        except LLMServiceError as exc:
            buffer.discard(turn)
            logger.error("agent_failed", agent=self.name, role=self.role, error=str(exc))
            raise ProviderError(f"{self.name} failed: {exc}", role=self.role) from exc
        buffer.append("assistant", reply)
        logger.debug("agent_responded", agent=self.name, characters=len(reply))
        return reply

    async def invoke(self, instruction: str) -> str:
        return await self.think(instruction)

    async def receive_message(self, message: AgentMessage) -> str:
        return await self.think(self.format_message(message))

    def format_message(self, message: AgentMessage) -> str:
        return f"[From {message.sender.upper()}] {message.content}"

    def clear_history(self) -> None:
        self.history.clear()
        logger.debug("agent_history_cleared", agent=self.name)
