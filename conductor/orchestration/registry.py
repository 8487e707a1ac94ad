from __future__ import annotations

from types import MappingProxyType
from typing import Any, Iterator, Mapping

from ..agents import ArchitectAgent, CapabilityProvider, CoderAgent, ReviewerAgent
from ..core.config import Settings
from ..core.errors import UnknownRoleError
from ..core.logging import get_logger
from ..schemas.tasks import AgentRole
from ..services.llm import LLMService

logger = get_logger(name=__name__)


def normalize_role(role: str | AgentRole) -> str:
    if isinstance(role, AgentRole):
        return role.value
    return str(role).strip().lower()


class CapabilityRegistry:
    """Read-only mapping from role identifier to capability provider."""

    def __init__(self, providers: Mapping[str | AgentRole, CapabilityProvider]) -> None:
        normalized: dict[str, CapabilityProvider] = {}
        for role, provider in providers.items():
            key = normalize_role(role)
            if key in normalized:
                raise ValueError(f"Duplicate provider registered for role: {key}")
            normalized[key] = provider
        self._providers: Mapping[str, CapabilityProvider] = MappingProxyType(normalized)

    @property
    def roles(self) -> tuple[str, ...]:
        return tuple(self._providers)

    def get(self, role: str | AgentRole) -> CapabilityProvider | None:
        return self._providers.get(normalize_role(role))

    def require(self, role: str | AgentRole) -> CapabilityProvider:
        provider = self.get(role)
        if provider is None:
            raise UnknownRoleError(normalize_role(role))
        return provider

    def __contains__(self, role: object) -> bool:
        if not isinstance(role, str):
            return False
        return normalize_role(role) in self._providers

    def __iter__(self) -> Iterator[str]:
        return iter(self._providers)

    def __len__(self) -> int:
        return len(self._providers)


def build_default_registry(settings: Settings, *, client: Any | None = None) -> CapabilityRegistry:
    """Register the coder, reviewer and architect agents backed by the configured model."""
    agents = settings.agents

    def _llm(temperature: float, max_tokens: int) -> LLMService:
        return LLMService.from_settings(settings, temperature=temperature, max_tokens=max_tokens, client=client)

    registry = CapabilityRegistry(
        {
            AgentRole.CODER: CoderAgent.build(_llm(agents.coder.temperature, agents.coder.max_tokens)),
            AgentRole.REVIEWER: ReviewerAgent.build(_llm(agents.reviewer.temperature, agents.reviewer.max_tokens)),
            AgentRole.ARCHITECT: ArchitectAgent.build(_llm(agents.architect.temperature, agents.architect.max_tokens)),
        }
    )
    logger.info("capability_registry_ready", roles=list(registry.roles))
    return registry
