"""Agent Configuration — process-wide model behavior parameters."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_MODEL_PROVIDER = "deepseek"


class AgentConfig(BaseModel):
    """Validated once at orchestrator construction; immutable afterwards."""

    model_config = ConfigDict(frozen=True, extra="forbid", strict=True)

    model_provider: str = DEFAULT_MODEL_PROVIDER
    temperature: float = Field(ge=0.0, le=2.0, default=0.7)
    max_tokens: int = Field(gt=0, default=2000)
    system_prompt: Optional[str] = None     # Overrides the built-in framing
