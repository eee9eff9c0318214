"""Framing prompts and request builders for the Universe Orchestrator."""

import json
from typing import Any, List, Optional

from parallel_you.models.universe import Universe

SYSTEM_PROMPT = """You are the Parallel Universe Agent, an advanced AI that helps users explore alternate versions of themselves across parallel universes.

Your capabilities include:
1. Generating realistic parallel universe scenarios based on key life decisions
2. Creating detailed personality profiles for alternate versions
3. Analyzing timeline divergences and their consequences
4. Simulating conversations with parallel selves
5. Comparing different life paths and outcomes

Guidelines:
- Be creative but maintain logical consistency within each universe
- Consider butterfly effects: small changes can lead to big differences
- Respect the user's privacy and emotional boundaries
- Provide insights that are thought-provoking but not distressing
- Use scientific concepts of multiverse theory when appropriate
- Balance realism with imagination

Remember: each parallel universe represents a path not taken, a decision made differently, or a circumstance that changed. Help users explore these possibilities with empathy and wisdom."""


def to_json(document: Any) -> str:
    return json.dumps(document, indent=2, default=str)


def serialize_universe(universe: Universe, history_window: Optional[int] = None) -> str:
    """Render a universe for the model, keeping only the most recent conversation entries."""
    data = universe.model_dump(mode="json")
    if history_window is not None:
        log = data["conversation_log"]
        data["conversation_log"] = log[-history_window:] if history_window > 0 else []
    return to_json(data)


def creation_request(base_profile: Any, divergence_point: Optional[str]) -> str:
    lines = [
        "Create a parallel universe for the following profile:",
        to_json(base_profile),
    ]
    if divergence_point:
        lines.append(f"Divergence point: {divergence_point}")
    return "\n".join(lines)


def exploration_request(serialized: str) -> str:
    return f"Explore and provide detailed insights about this universe:\n{serialized}"


def comparison_request(serialized: List[str]) -> str:
    return (
        "Compare these parallel universes and highlight key differences:\n["
        + ",\n".join(serialized)
        + "]"
    )


def persona_framing(universe_id: str, serialized: str) -> str:
    return (
        f"You are now embodying the parallel self from universe {universe_id}.\n"
        "Respond as this version would, based on their experiences and personality:\n"
        f"{serialized}"
    )


def timeline_request(serialized: str) -> str:
    return (
        "Generate a detailed timeline for this parallel universe, showing key "
        f"events and how they differ from the base reality:\n{serialized}"
    )


def personality_request(serialized: str) -> str:
    return (
        "Analyze the personality of the parallel self in this universe. Provide "
        "detailed personality traits, values, and behavioral patterns:\n"
        f"{serialized}"
    )
