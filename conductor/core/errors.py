from __future__ import annotations

__all__ = [
    "ConductorError",
    "PlanDecodeError",
    "ProviderError",
    "UnknownRoleError",
]


class ConductorError(RuntimeError):
    """Base class for orchestration errors."""


class PlanDecodeError(ConductorError):
    """Raised when a decomposition payload cannot be decoded into tasks."""

    def __init__(self, message: str, *, reason: str = "invalid_payload") -> None:
        super().__init__(message)
        self.reason = reason


class ProviderError(ConductorError):
    """Raised when a capability provider fails to produce a result."""

    def __init__(self, message: str, *, role: str | None = None) -> None:
        super().__init__(message)
        self.role = role


class UnknownRoleError(ConductorError, LookupError):
    """Raised when no capability provider is registered for a role."""

    def __init__(self, role: str) -> None:
        super().__init__(f"No capability provider registered for role: {role}")
        self.role = role
