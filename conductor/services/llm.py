from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, ClassVar, Iterable, Sequence

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from ..core.config import Settings
from ..core.errors import ConductorError
from ..core.logging import get_logger

logger = get_logger(name=__name__)

Turn = tuple[str, str]


class LLMServiceError(ConductorError):
    """Raised when the chat model cannot produce a completion."""


def _build_base_url(host: str, port: int) -> str:
    if ":" in host.rsplit("/", maxsplit=1)[-1]:
        return host.rstrip("/")
    return f"{host.rstrip('/')}:{port}"


def build_messages(turns: Iterable[Turn], system_prompt: str | None = None) -> list[BaseMessage]:
    messages: list[BaseMessage] = []
    if system_prompt:
        messages.append(SystemMessage(content=system_prompt))
    for role, content in turns:
        if role == "assistant":
            messages.append(AIMessage(content=content))
        else:
            messages.append(HumanMessage(content=content))
    return messages


@dataclass
class LLMService:
    """Thin LangChain-based chat client for a local Ollama model."""

    settings: Settings
    _client: Any
    model: str
    _client_cache: ClassVar[dict[str, Any]] = {}

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        client: Any | None = None,
    ) -> "LLMService":
        model_name = model or settings.ollama.model
        if client is None:
            cache_key = f"{settings.ollama.host}:{settings.ollama.port}:{model_name}:{temperature}:{max_tokens}"
            cached = cls._client_cache.get(cache_key)
            if cached is None:
                from langchain_ollama import ChatOllama

                options: dict[str, Any] = {}
                if temperature is not None:
                    options["temperature"] = temperature
                if max_tokens is not None:
                    options["num_predict"] = max_tokens
                base_url = _build_base_url(settings.ollama.host, settings.ollama.port)
                cached = ChatOllama(model=model_name, base_url=base_url, **options)
                cls._client_cache[cache_key] = cached
            client = cached
        return cls(settings=settings, _client=client, model=model_name)

    async def chat(self, turns: Sequence[Turn], *, system_prompt: str | None = None) -> str:
        """Send the conversation to the model and return the reply text."""
        messages = build_messages(turns, system_prompt)
        started = time.perf_counter()
        try:
            result = await self._client.ainvoke(messages)
        except Exception as exc:
            logger.warning("llm_chat_failed", model=self.model, error=str(exc))
            raise LLMServiceError(f"Model {self.model} failed: {exc}") from exc
        logger.debug(
            "llm_chat_completed",
            model=self.model,
            turns=len(turns),
            latency=round(time.perf_counter() - started, 3),
        )
        return _extract_content(result)

    async def generate(self, prompt: str, *, system_prompt: str | None = None) -> str:
        return await self.chat([("user", prompt)], system_prompt=system_prompt)


def _extract_content(result: Any) -> str:
    content = getattr(result, "content", result)
    if isinstance(content, list):
        parts: list[str] = []
        for item in content:
            if isinstance(item, dict):
                parts.append(str(item.get("text", "")))
            else:
                parts.append(str(item))
        return "".join(parts)
    return str(content)
