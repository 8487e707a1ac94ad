from __future__ import annotations

from functools import lru_cache
from typing import Any, Literal, Mapping

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class OllamaSettings(BaseModel):
    host: str = Field("http://localhost", description="Base URL where Ollama is running.")
    port: int = Field(11434, ge=1, le=65535)
    model: str = Field("llama3", description="Default chat model served via Ollama.")


class AgentSettings(BaseModel):
    temperature: float = Field(0.3, ge=0.0, le=1.0)
    max_tokens: int = Field(4096, ge=128)


class AgentsSettings(BaseModel):
    coder: AgentSettings = Field(default_factory=lambda: AgentSettings(temperature=0.3, max_tokens=8192))
    reviewer: AgentSettings = Field(default_factory=lambda: AgentSettings(temperature=0.2, max_tokens=4096))
    architect: AgentSettings = Field(default_factory=lambda: AgentSettings(temperature=0.5, max_tokens=8192))
    conductor: AgentSettings = Field(default_factory=lambda: AgentSettings(temperature=0.0, max_tokens=4096))


class OrchestratorSettings(BaseModel):
    max_concurrent_tasks: int = Field(3, ge=1, description="Upper bound on tasks executed in one scheduling round.")
    auto_retry: bool = Field(True, description="Re-invoke a task after a provider failure.")
    max_retries: int = Field(2, ge=0, description="Re-attempts allowed per task after the first invocation.")
    retry_backoff_seconds: float = Field(0.0, ge=0.0)
    retry_backoff_multiplier: float = Field(2.0, ge=1.0)
    retry_max_backoff_seconds: float = Field(30.0, ge=0.0)
    task_timeout_seconds: float | None = Field(
        None,
        gt=0.0,
        description="Optional deadline for a single provider invocation.",
    )
    block_dependents_on_failure: bool = Field(
        False,
        description="Mark dependents of a failed task as blocked instead of scheduling them.",
    )
    prioritize_ready_tasks: bool = Field(
        False,
        description="Order each ready set by priority rank before declaration order.",
    )
    default_role: str = Field("coder", min_length=1, description="Role assigned to the fallback task.")


class ObservabilitySettings(BaseModel):
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_format: Literal["json", "console"] = "console"


class Settings(BaseSettings):
    environment: Literal["local", "test", "production"] = Field("local")

    orchestrator: OrchestratorSettings = Field(default_factory=OrchestratorSettings)  # type: ignore[arg-type]
    ollama: OllamaSettings = Field(default_factory=OllamaSettings)  # type: ignore[arg-type]
    agents: AgentsSettings = Field(default_factory=AgentsSettings)  # type: ignore[arg-type]
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)  # type: ignore[arg-type]

    model_config = SettingsConfigDict(
        env_prefix="CONDUCTOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )


@lru_cache(maxsize=1)
def _get_cached_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]


def get_settings(overrides: Mapping[str, Any] | None = None) -> Settings:
    """Return settings, using cached defaults unless overrides are provided."""
    if overrides:
        return Settings(**dict(overrides))
    return _get_cached_settings()
