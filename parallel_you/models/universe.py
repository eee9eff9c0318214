"""Universe — a generated alternate-reality record and its conversation log."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict


class ConversationEntry(BaseModel):
    """One exchange with a parallel self. Never mutated once appended."""

    model_config = ConfigDict(frozen=True)

    message: str                            # Inbound user text
    response: str                           # Model reply content
    timestamp: datetime
    sequence: Optional[int] = None          # Assigned by the store on append


class Universe(BaseModel):
    """
    A stored parallel universe.

    Everything except ``conversation_log`` is fixed at creation. The base
    profile and generated content are opaque JSON documents: the core stores
    and forwards them without assuming a schema.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    owner_id: str
    base_profile: Any
    divergence_point: Optional[str] = None
    generated_content: Dict[str, Any]
    created_at: datetime
    conversation_log: List[ConversationEntry] = []
