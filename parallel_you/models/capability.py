"""Capability routing models — intents, tool policies and model exchanges."""

from enum import Enum
from typing import Any, Callable, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field


class Intent(str, Enum):
    """Symbolic intents the orchestrator routes through the Capability Router."""
    AUTO_SELECT = "auto-select"
    GENERATE_UNIVERSE = "generate-universe"
    GENERATE_TIMELINE = "generate-timeline"
    ANALYZE_PERSONALITY = "analyze-personality"


class TurnRole(str, Enum):
    SYSTEM = "system"
    USER = "user"


class ConversationTurn(BaseModel):
    """A single framed message sent to the Model Service."""

    role: TurnRole
    content: str


class AutomaticToolPolicy(BaseModel):
    """The model chooses freely among the offered capabilities."""

    mode: Literal["automatic"] = "automatic"


class ForcedToolPolicy(BaseModel):
    """The model must invoke one named capability."""

    mode: Literal["forced"] = "forced"
    capability: str


ToolPolicy = Union[AutomaticToolPolicy, ForcedToolPolicy]


class CapabilityProvider(BaseModel):
    """
    A named tool the Model Service may invoke.

    ``parameters`` is a JSON schema describing the handler's arguments, matching
    the function-calling protocol of OpenAI-compatible providers.
    """

    name: str
    description: str
    parameters: Dict[str, Any] = {"type": "object", "properties": {}}
    handler: Callable[[Dict[str, Any]], Any] = Field(exclude=True)

    def invoke(self, arguments: Dict[str, Any]) -> Any:
        return self.handler(arguments)


class ToolInvocation(BaseModel):
    """A capability call made by the model during one run."""

    name: str
    arguments: Dict[str, Any] = {}
    result: Any = None


class ModelResponse(BaseModel):
    """Raw Model Service response. The router does not interpret it."""

    content: str
    tool_calls: List[ToolInvocation] = []
    model: Optional[str] = None
    finish_reason: Optional[str] = None
    usage: Optional[Dict[str, Any]] = None


class CreatedUniverse(ModelResponse):
    """Result envelope for universe creation: the new id plus the model response."""

    id: str
