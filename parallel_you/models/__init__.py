"""Parallel You data models."""

from parallel_you.models.agent import DEFAULT_MODEL_PROVIDER, AgentConfig
from parallel_you.models.capability import (
    AutomaticToolPolicy,
    CapabilityProvider,
    ConversationTurn,
    CreatedUniverse,
    ForcedToolPolicy,
    Intent,
    ModelResponse,
    ToolInvocation,
    ToolPolicy,
    TurnRole,
)
from parallel_you.models.universe import ConversationEntry, Universe

__all__ = [
    "AgentConfig",
    "AutomaticToolPolicy",
    "CapabilityProvider",
    "ConversationEntry",
    "ConversationTurn",
    "CreatedUniverse",
    "DEFAULT_MODEL_PROVIDER",
    "ForcedToolPolicy",
    "Intent",
    "ModelResponse",
    "ToolInvocation",
    "ToolPolicy",
    "TurnRole",
    "Universe",
]
