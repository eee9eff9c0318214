"""
Configuration Validator — turns an optional partial agent configuration into
a fully-populated, immutable AgentConfig.
"""

from typing import Any, Mapping, Optional

from pydantic import ValidationError

from parallel_you.errors import InvalidConfiguration
from parallel_you.models.agent import AgentConfig


def validate_agent_config(
    partial: Optional[Mapping[str, Any]] = None,
) -> AgentConfig:
    """
    Validate and default agent configuration.

    Missing fields take their defaults. A temperature outside [0, 2], a field
    of the wrong type, or an unknown field raises InvalidConfiguration.
    """
    if isinstance(partial, AgentConfig):
        return partial
    if partial is not None and not isinstance(partial, Mapping):
        raise InvalidConfiguration(
            f"Agent configuration must be a mapping, got {type(partial).__name__}"
        )

    try:
        return AgentConfig.model_validate(dict(partial or {}))
    except ValidationError as e:
        fields = ", ".join(
            ".".join(str(part) for part in err["loc"]) or "<root>"
            for err in e.errors()
        )
        raise InvalidConfiguration(
            f"Invalid agent configuration: {fields}",
            errors=e.errors(include_url=False),
        ) from e
