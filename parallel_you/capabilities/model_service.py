"""
Model Service — the language-model inference boundary.

The orchestrator only sees ``run(turns, tool_policy, tools)``. Backends:
- OpenAIModelService: OpenAI-compatible chat completions (DeepSeek, OpenAI).
  Tool calls requested by the model are executed against the offered
  providers and fed back until the model answers in text.
- OfflineModelService: deterministic and network-free, for local runs and tests.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Protocol

import openai
from openai import AsyncOpenAI

from parallel_you.errors import InvalidConfiguration, ModelServiceFailure
from parallel_you.models.agent import AgentConfig
from parallel_you.models.capability import (
    CapabilityProvider,
    ConversationTurn,
    ForcedToolPolicy,
    ModelResponse,
    ToolInvocation,
    ToolPolicy,
    TurnRole,
)

logger = logging.getLogger(__name__)

# Model-selection key -> OpenAI-compatible endpoint
MODEL_PROVIDERS: Dict[str, Dict[str, Optional[str]]] = {
    "deepseek": {
        "model": "deepseek-chat",
        "base_url": "https://api.deepseek.com",
        "api_key_setting": "deepseek_api_key",
    },
    "openai": {
        "model": "gpt-4o-mini",
        "base_url": None,
        "api_key_setting": "openai_api_key",
    },
}

OFFLINE_PROVIDER = "offline"


class ModelService(Protocol):
    """Protocol for model inference — pluggable backend."""

    async def run(
        self,
        turns: List[ConversationTurn],
        tool_policy: ToolPolicy,
        tools: List[CapabilityProvider],
    ) -> ModelResponse: ...


def _tool_spec(provider: CapabilityProvider) -> dict:
    return {
        "type": "function",
        "function": {
            "name": provider.name,
            "description": provider.description,
            "parameters": provider.parameters,
        },
    }


def _tool_choice(tool_policy: ToolPolicy) -> Any:
    if isinstance(tool_policy, ForcedToolPolicy):
        return {"type": "function", "function": {"name": tool_policy.capability}}
    return "auto"


class OpenAIModelService:
    """Chat-completions backend for any OpenAI-compatible provider."""

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str,
        temperature: float = 0.7,
        max_tokens: int = 2000,
        max_tool_rounds: int = 3,
    ):
        self.client = client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.max_tool_rounds = max_tool_rounds

    async def run(
        self,
        turns: List[ConversationTurn],
        tool_policy: ToolPolicy,
        tools: List[CapabilityProvider],
    ) -> ModelResponse:
        messages: List[dict] = [
            {"role": t.role.value, "content": t.content} for t in turns
        ]
        by_name = {p.name: p for p in tools}
        invocations: List[ToolInvocation] = []
        tool_choice = _tool_choice(tool_policy)

        for round_number in range(self.max_tool_rounds + 1):
            request: Dict[str, Any] = {
                "model": self.model,
                "messages": messages,
                "temperature": self.temperature,
                "max_tokens": self.max_tokens,
            }
            # The final round must produce text, so tools are withheld
            if tools and round_number < self.max_tool_rounds:
                request["tools"] = [_tool_spec(p) for p in tools]
                request["tool_choice"] = tool_choice

            try:
                completion = await self.client.chat.completions.create(**request)
            except openai.OpenAIError as e:
                raise ModelServiceFailure(f"{type(e).__name__}: {e}") from e

            if not completion.choices:
                raise ModelServiceFailure("Model returned no choices")
            choice = completion.choices[0]
            message = choice.message

            if not message.tool_calls or "tools" not in request:
                return ModelResponse(
                    content=message.content or "",
                    tool_calls=invocations,
                    model=completion.model,
                    finish_reason=choice.finish_reason,
                    usage=completion.usage.model_dump() if completion.usage else None,
                )

            messages.append(message.model_dump(exclude_none=True))
            for call in message.tool_calls:
                invocation = self._invoke_tool(call, by_name)
                invocations.append(invocation)
                messages.append({
                    "role": "tool",
                    "tool_call_id": call.id,
                    "content": json.dumps(invocation.result, default=str),
                })
            # Forcing applies to the first round only
            tool_choice = "auto"

        raise ModelServiceFailure("Model did not produce a final answer")

    def _invoke_tool(
        self, call: Any, by_name: Dict[str, CapabilityProvider]
    ) -> ToolInvocation:
        name = call.function.name
        try:
            arguments = json.loads(call.function.arguments or "{}")
        except json.JSONDecodeError as e:
            raise ModelServiceFailure(
                f"Malformed arguments for tool call {name}: {e}"
            ) from e
        if not isinstance(arguments, dict):
            raise ModelServiceFailure(
                f"Arguments for tool call {name} must be a JSON object"
            )

        provider = by_name.get(name)
        if provider is None:
            logger.warning("Model requested unknown capability %s", name)
            return ToolInvocation(
                name=name,
                arguments=arguments,
                result={"error": f"Unknown capability: {name}"},
            )

        try:
            result = provider.invoke(arguments)
        except Exception as e:
            # Reported back like an unknown tool so the model can recover
            logger.warning("Capability %s rejected its arguments: %s", name, e)
            result = {"error": f"Capability {name} failed: {type(e).__name__}: {e}"}
        return ToolInvocation(name=name, arguments=arguments, result=result)


class OfflineModelService:
    """
    Deterministic model stand-in that never touches the network.
    Forced capabilities are invoked with empty arguments.
    """

    model = "offline"

    async def run(
        self,
        turns: List[ConversationTurn],
        tool_policy: ToolPolicy,
        tools: List[CapabilityProvider],
    ) -> ModelResponse:
        prompt = next(
            (t.content for t in reversed(turns) if t.role == TurnRole.USER), ""
        )
        invocations = []
        if isinstance(tool_policy, ForcedToolPolicy):
            provider = next(
                (p for p in tools if p.name == tool_policy.capability), None
            )
            if provider is None:
                raise ModelServiceFailure(
                    f"Forced capability was not offered: {tool_policy.capability}"
                )
            invocations.append(ToolInvocation(
                name=provider.name, arguments={}, result=provider.invoke({}),
            ))

        headline = prompt.strip().splitlines()[0] if prompt.strip() else ""
        return ModelResponse(
            content=f"[offline] {headline[:200]}",
            tool_calls=invocations,
            model=self.model,
            finish_reason="stop",
        )


def build_model_service(
    config: AgentConfig,
    api_keys: Optional[Dict[str, str]] = None,
    timeout: Optional[float] = None,
) -> ModelService:
    """Select a backend from the configuration's model-selection key."""
    if config.model_provider == OFFLINE_PROVIDER:
        return OfflineModelService()

    endpoint = MODEL_PROVIDERS.get(config.model_provider)
    if endpoint is None:
        raise InvalidConfiguration(
            f"Unknown model provider: {config.model_provider}"
        )

    api_key = (api_keys or {}).get(endpoint["api_key_setting"])
    if not api_key:
        raise InvalidConfiguration(
            f"{endpoint['api_key_setting'].upper()} is required for "
            f"model provider {config.model_provider}"
        )

    client_options: Dict[str, Any] = {"api_key": api_key, "base_url": endpoint["base_url"]}
    if timeout is not None:
        client_options["timeout"] = timeout
    client = AsyncOpenAI(**client_options)
    return OpenAIModelService(
        client=client,
        model=endpoint["model"],
        temperature=config.temperature,
        max_tokens=config.max_tokens,
    )
