"""
Universe Orchestrator — owns the universe lifecycle.

  absent --create--> active --(explore|compare|chat|timeline|analyze)*--> active
  unknown id --> UniverseNotFound

Behavioral Contract:
- Every mutation goes through the Universe Store; the orchestrator holds ids,
  never references into stored state
- No lock is held across an await: read a snapshot, call the model, write
- Model Service and Store errors propagate unmodified; nothing is retried
- Only compare_universes absorbs per-id misses
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, List, Mapping, Optional
from uuid import uuid4

from parallel_you.capabilities.model_service import build_model_service
from parallel_you.capabilities.providers import default_providers
from parallel_you.capabilities.router import CapabilityRouter
from parallel_you.configuration.settings import Settings
from parallel_you.configuration.validator import validate_agent_config
from parallel_you.errors import InsufficientUniverses, UniverseNotFound
from parallel_you.models.agent import AgentConfig
from parallel_you.models.capability import (
    ConversationTurn,
    CreatedUniverse,
    Intent,
    ModelResponse,
    TurnRole,
)
from parallel_you.models.universe import ConversationEntry, Universe
from parallel_you.orchestrator import prompts
from parallel_you.universe_store.sqlite import SQLiteUniverseStore
from parallel_you.universe_store.store import UniverseStore

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_WINDOW = 20


def new_universe_id() -> str:
    """128-bit random universe identifier."""
    return f"universe_{uuid4().hex}"


class UniverseOrchestrator:
    """
    Explicit context object constructed once at startup and shared by every
    request handler. Configuration is validated here and frozen for the
    orchestrator's lifetime.
    """

    def __init__(
        self,
        store: UniverseStore,
        router: CapabilityRouter,
        config: Optional[Mapping[str, Any] | AgentConfig] = None,
        history_window: int = DEFAULT_HISTORY_WINDOW,
    ):
        self.config = validate_agent_config(config)
        self.store = store
        self.router = router
        self.history_window = history_window

    @property
    def system_prompt(self) -> str:
        return self.config.system_prompt or prompts.SYSTEM_PROMPT

    def _turns(self, *turns: ConversationTurn) -> List[ConversationTurn]:
        return [
            ConversationTurn(role=TurnRole.SYSTEM, content=self.system_prompt),
            *turns,
        ]

    def _user(self, content: str) -> ConversationTurn:
        return ConversationTurn(role=TurnRole.USER, content=content)

    def _serialize(self, universe: Universe) -> str:
        return prompts.serialize_universe(universe, self.history_window)

    async def _load(self, universe_id: str) -> Universe:
        universe = await self.store.get(universe_id)
        if universe is None:
            raise UniverseNotFound(universe_id)
        return universe

    # === LIFECYCLE ===

    async def create_universe(
        self,
        owner_id: str,
        base_profile: Any,
        divergence_point: Optional[str] = None,
    ) -> CreatedUniverse:
        """Generate a universe and persist it with a single store write."""
        logger.info("Creating new universe for user %s", owner_id)

        response = await self.router.invoke(
            Intent.AUTO_SELECT,
            self._turns(self._user(
                prompts.creation_request(base_profile, divergence_point)
            )),
        )

        universe_id = new_universe_id()
        record = Universe(
            id=universe_id,
            owner_id=owner_id,
            base_profile=base_profile,
            divergence_point=divergence_point,
            generated_content=response.model_dump(mode="json"),
            created_at=datetime.utcnow(),
        )
        # A collision is an invalid state, never an overwrite
        await self.store.put(universe_id, record, replace=False)

        logger.info("Universe %s created for user %s", universe_id, owner_id)
        return CreatedUniverse(id=universe_id, **response.model_dump())

    async def get_universe(self, universe_id: str) -> Universe:
        """Fetch a stored universe."""
        return await self._load(universe_id)

    async def list_universes(self, owner_id: str) -> List[Universe]:
        """All universes owned by a user."""
        return await self.store.list_by_owner(owner_id)

    async def explore_universe(self, universe_id: str) -> ModelResponse:
        """Open-ended elaboration of a universe. Read-only."""
        universe = await self._load(universe_id)
        return await self.router.invoke(
            Intent.AUTO_SELECT,
            self._turns(self._user(
                prompts.exploration_request(self._serialize(universe))
            )),
        )

    async def compare_universes(self, universe_ids: List[str]) -> ModelResponse:
        """
        Compare two or more universes. Read-only.

        Lookups fan out concurrently. Unknown ids are dropped; the call only
        fails when fewer than two universes remain.
        """
        loaded = await asyncio.gather(
            *(self.store.get(universe_id) for universe_id in universe_ids)
        )
        valid = [u for u in loaded if u is not None]

        if len(valid) < len(universe_ids):
            missing = [
                universe_id
                for universe_id, u in zip(universe_ids, loaded)
                if u is None
            ]
            logger.warning("Skipping unknown universes in comparison: %s", missing)

        if len(valid) < 2:
            raise InsufficientUniverses(
                requested=list(universe_ids),
                resolved=[u.id for u in valid],
            )

        return await self.router.invoke(
            Intent.AUTO_SELECT,
            self._turns(self._user(
                prompts.comparison_request([self._serialize(u) for u in valid])
            )),
        )

    async def chat_with_parallel_self(
        self, universe_id: str, message: str
    ) -> ModelResponse:
        """
        Converse with the universe's persona.

        The exchange is appended only after the model responds, so a failed
        call leaves the conversation log untouched.
        """
        universe = await self._load(universe_id)

        response = await self.router.invoke(
            Intent.AUTO_SELECT,
            self._turns(
                ConversationTurn(
                    role=TurnRole.SYSTEM,
                    content=prompts.persona_framing(
                        universe_id, self._serialize(universe)
                    ),
                ),
                self._user(message),
            ),
        )

        entry = await self.store.append_conversation(
            universe_id,
            ConversationEntry(
                message=message,
                response=response.content,
                timestamp=datetime.utcnow(),
            ),
        )
        logger.info(
            "Conversation entry %s appended to universe %s",
            entry.sequence, universe_id,
        )
        return response

    async def get_conversation(self, universe_id: str) -> List[ConversationEntry]:
        universe = await self._load(universe_id)
        return universe.conversation_log

    async def generate_timeline(self, universe_id: str) -> ModelResponse:
        """Force the timeline capability. Read-only."""
        universe = await self._load(universe_id)
        return await self.router.invoke(
            Intent.GENERATE_TIMELINE,
            self._turns(self._user(
                prompts.timeline_request(self._serialize(universe))
            )),
        )

    async def analyze_personality(self, universe_id: str) -> ModelResponse:
        """Force the personality capability. Read-only."""
        universe = await self._load(universe_id)
        return await self.router.invoke(
            Intent.ANALYZE_PERSONALITY,
            self._turns(self._user(
                prompts.personality_request(self._serialize(universe))
            )),
        )


def initialize_orchestrator(settings: Settings) -> UniverseOrchestrator:
    """Build the production orchestrator from process settings."""
    config = validate_agent_config(settings.agent_config())
    model_service = build_model_service(
        config,
        api_keys={
            "deepseek_api_key": settings.deepseek_api_key,
            "openai_api_key": settings.openai_api_key,
        },
        timeout=settings.model_timeout_seconds,
    )
    router = CapabilityRouter(model_service, default_providers())
    store = SQLiteUniverseStore(db_path=settings.universe_db_path)
    return UniverseOrchestrator(
        store=store,
        router=router,
        config=config,
        history_window=settings.history_window,
    )
