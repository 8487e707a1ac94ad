from .architect import ArchitectAgent
from .base import CapabilityProvider, ConversationHistory, LLMAgent
from .coder import CoderAgent
from .conductor import ConductorAgent
from .reviewer import ReviewerAgent
from ..core.errors import ProviderError

__all__ = [
    "ArchitectAgent",
    "CapabilityProvider",
    "CoderAgent",
    "ConductorAgent",
    "ConversationHistory",
    "LLMAgent",
    "ProviderError",
    "ReviewerAgent",
]
