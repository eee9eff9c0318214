"""
Capability Router — resolves a symbolic intent to a tool policy and hands the
request to the Model Service.

Behavioral Contract:
- AUTO_SELECT lets the model choose among every registered provider
- A named intent forces that provider, or raises CapabilityUnavailable
- Returns the Model Service's raw response; never interprets it
"""

import logging
from typing import Dict, Iterable, List, Optional

from parallel_you.capabilities.model_service import ModelService
from parallel_you.errors import CapabilityUnavailable
from parallel_you.models.capability import (
    AutomaticToolPolicy,
    CapabilityProvider,
    ConversationTurn,
    ForcedToolPolicy,
    Intent,
    ModelResponse,
    ToolPolicy,
)

logger = logging.getLogger(__name__)


class CapabilityRouter:
    """Mediates which Capability Providers are offered or forced per call."""

    def __init__(
        self,
        model_service: ModelService,
        providers: Optional[Iterable[CapabilityProvider]] = None,
    ):
        self.model_service = model_service
        self._providers: Dict[str, CapabilityProvider] = {}
        for provider in providers or []:
            self.register(provider)

    def register(self, provider: CapabilityProvider) -> None:
        """Register a provider under its symbolic name, replacing any previous one."""
        self._providers[provider.name] = provider

    def get(self, name: str) -> Optional[CapabilityProvider]:
        return self._providers.get(name)

    def providers(self) -> List[CapabilityProvider]:
        return list(self._providers.values())

    def resolve_policy(self, intent: Intent) -> ToolPolicy:
        """Map an intent to a tool policy."""
        if intent == Intent.AUTO_SELECT:
            return AutomaticToolPolicy()
        if intent.value not in self._providers:
            raise CapabilityUnavailable(intent.value)
        return ForcedToolPolicy(capability=intent.value)

    async def invoke(
        self, intent: Intent, turns: List[ConversationTurn]
    ) -> ModelResponse:
        """Route one model call according to the intent's tool policy."""
        policy = self.resolve_policy(intent)
        logger.debug("Routing %s with %s policy", intent.value, policy.mode)
        return await self.model_service.run(turns, policy, self.providers())
