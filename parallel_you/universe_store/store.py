"""
Universe Store — the durability and concurrency boundary of the service.

Behavioral Contract:
- put() creates or replaces a universe atomically; no partial record is ever
  visible to a concurrent get().
- append_conversation() appends atomically and fails for unknown ids.
- put() and append_conversation() on the same id serialize into one total
  order. Different ids proceed independently.
- Records handed out are copies. Callers cannot mutate stored state.
"""

import asyncio
import logging
from collections import defaultdict
from typing import Dict, List, Optional, Protocol

from parallel_you.errors import UniverseIdCollision, UniverseNotFound
from parallel_you.models.universe import ConversationEntry, Universe

logger = logging.getLogger(__name__)


class UniverseStore(Protocol):
    """Contract every persistence backend must satisfy."""

    async def put(
        self, universe_id: str, record: Universe, replace: bool = True
    ) -> None: ...

    async def get(self, universe_id: str) -> Optional[Universe]: ...

    async def append_conversation(
        self, universe_id: str, entry: ConversationEntry
    ) -> ConversationEntry: ...

    async def list_by_owner(self, owner_id: str) -> List[Universe]: ...

    async def count(self) -> int: ...

    async def close(self) -> None: ...


class InMemoryUniverseStore:
    """
    In-memory universe store.
    Used by tests and by short-lived processes that need no durability.
    """

    def __init__(self):
        self._universes: Dict[str, Universe] = {}
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def put(
        self, universe_id: str, record: Universe, replace: bool = True
    ) -> None:
        """Create or replace a universe. With replace=False an existing id is a collision."""
        async with self._locks[universe_id]:
            if not replace and universe_id in self._universes:
                raise UniverseIdCollision(universe_id)
            stored = record.model_copy(update={"id": universe_id}, deep=True)
            log = [
                entry.model_copy(update={"sequence": i + 1})
                for i, entry in enumerate(stored.conversation_log)
            ]
            # Single assignment publishes the fully-built record
            self._universes[universe_id] = stored.model_copy(
                update={"conversation_log": log}
            )

    async def get(self, universe_id: str) -> Optional[Universe]:
        record = self._universes.get(universe_id)
        return record.model_copy(deep=True) if record else None

    async def append_conversation(
        self, universe_id: str, entry: ConversationEntry
    ) -> ConversationEntry:
        """Append an entry to a universe's conversation log."""
        async with self._locks[universe_id]:
            record = self._universes.get(universe_id)
            if record is None:
                raise UniverseNotFound(universe_id)
            stored = entry.model_copy(
                update={"sequence": len(record.conversation_log) + 1}
            )
            self._universes[universe_id] = record.model_copy(
                update={"conversation_log": [*record.conversation_log, stored]}
            )
        logger.debug(
            "Appended entry %d to universe %s", stored.sequence, universe_id
        )
        return stored

    async def list_by_owner(self, owner_id: str) -> List[Universe]:
        """All universes created by an owner, oldest first."""
        records = [
            u for u in self._universes.values() if u.owner_id == owner_id
        ]
        records.sort(key=lambda u: u.created_at)
        return [u.model_copy(deep=True) for u in records]

    async def count(self) -> int:
        return len(self._universes)

    async def close(self) -> None:
        self._universes.clear()
