"""
Capability Providers — the tool bundles the Model Service may invoke.

Each provider structures the arguments the model supplies into a stable
document shape. Handlers are deterministic and side-effect free; the model does
the creative work, the providers give it a consistent frame.
"""

from typing import Any, Dict, List, Optional

from parallel_you.models.capability import CapabilityProvider, Intent

# Life domains a divergence can ripple through
LIFE_DOMAINS = [
    "career",
    "relationships",
    "location",
    "health",
    "finances",
    "personal_growth",
]


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return None


def _generate_universe(arguments: Dict[str, Any]) -> Dict[str, Any]:
    divergence = arguments.get("divergence_point") or "an unrecorded choice"
    changes = _as_dict(arguments.get("changes"))
    return {
        "universe_name": arguments.get("universe_name")
        or f"The world where {divergence}",
        "divergence_point": divergence,
        "year_of_divergence": arguments.get("year_of_divergence"),
        "domains": {
            domain: changes.get(domain, "unchanged") for domain in LIFE_DOMAINS
        },
        "summary": arguments.get("summary", ""),
    }


def _generate_timeline(arguments: Dict[str, Any]) -> Dict[str, Any]:
    events = []
    for raw in _as_list(arguments.get("events")):
        if isinstance(raw, dict):
            events.append({
                "year": _as_int(raw.get("year")),
                "event": raw.get("event", ""),
                "differs_from_base": bool(raw.get("differs_from_base", True)),
            })
        else:
            events.append({"year": None, "event": str(raw), "differs_from_base": True})

    # Undated events keep their relative order after the dated ones
    events.sort(key=lambda e: (e["year"] is None, e["year"] or 0))
    return {
        "events": events,
        "divergence_count": sum(1 for e in events if e["differs_from_base"]),
    }


def _analyze_personality(arguments: Dict[str, Any]) -> Dict[str, Any]:
    traits = {}
    for name, score in _as_dict(arguments.get("traits")).items():
        try:
            traits[name] = max(0.0, min(1.0, float(score)))
        except (TypeError, ValueError):
            continue
    return {
        "traits": traits,
        "values": _as_list(arguments.get("values")),
        "behavioral_patterns": _as_list(arguments.get("behavioral_patterns")),
        "dominant_trait": max(traits, key=traits.get) if traits else None,
    }


def _assess_butterfly_effect(arguments: Dict[str, Any]) -> Dict[str, Any]:
    ripples = _as_list(arguments.get("ripples"))
    return {
        "change": arguments.get("change", ""),
        "ripples": ripples,
        "magnitude": "major" if len(ripples) >= 3 else "minor",
    }


def _suggest_divergence_points(arguments: Dict[str, Any]) -> Dict[str, Any]:
    candidates = _as_list(arguments.get("candidates"))
    limit = _as_int(arguments.get("limit"))
    if limit is None or limit < 1:
        limit = 5
    return {"divergence_points": candidates[:limit]}


def default_providers() -> List[CapabilityProvider]:
    """The universe, personality and timeline bundles plus auxiliary helpers."""
    return [
        CapabilityProvider(
            name=Intent.GENERATE_UNIVERSE.value,
            description=(
                "Generate a parallel universe scenario branching from a key "
                "life decision, describing how each life domain changed."
            ),
            parameters={
                "type": "object",
                "properties": {
                    "universe_name": {"type": "string"},
                    "divergence_point": {"type": "string"},
                    "year_of_divergence": {"type": "integer"},
                    "changes": {
                        "type": "object",
                        "description": "Life domain -> how it differs",
                        "additionalProperties": {"type": "string"},
                    },
                    "summary": {"type": "string"},
                },
                "required": ["divergence_point"],
            },
            handler=_generate_universe,
        ),
        CapabilityProvider(
            name=Intent.GENERATE_TIMELINE.value,
            description=(
                "Lay out the key events of a parallel universe in order, "
                "marking those that differ from the base reality."
            ),
            parameters={
                "type": "object",
                "properties": {
                    "events": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "properties": {
                                "year": {"type": "integer"},
                                "event": {"type": "string"},
                                "differs_from_base": {"type": "boolean"},
                            },
                            "required": ["event"],
                        },
                    },
                },
                "required": ["events"],
            },
            handler=_generate_timeline,
        ),
        CapabilityProvider(
            name=Intent.ANALYZE_PERSONALITY.value,
            description=(
                "Profile the parallel self: trait scores in [0, 1], core "
                "values and behavioral patterns."
            ),
            parameters={
                "type": "object",
                "properties": {
                    "traits": {
                        "type": "object",
                        "additionalProperties": {"type": "number"},
                    },
                    "values": {"type": "array", "items": {"type": "string"}},
                    "behavioral_patterns": {
                        "type": "array",
                        "items": {"type": "string"},
                    },
                },
                "required": ["traits"],
            },
            handler=_analyze_personality,
        ),
        CapabilityProvider(
            name="assess-butterfly-effect",
            description="Trace how a small change ripples into larger consequences.",
            parameters={
                "type": "object",
                "properties": {
                    "change": {"type": "string"},
                    "ripples": {"type": "array", "items": {"type": "string"}},
                },
                "required": ["change"],
            },
            handler=_assess_butterfly_effect,
        ),
        CapabilityProvider(
            name="suggest-divergence-points",
            description="Propose pivotal life moments worth branching from.",
            parameters={
                "type": "object",
                "properties": {
                    "candidates": {"type": "array", "items": {"type": "string"}},
                    "limit": {"type": "integer"},
                },
                "required": ["candidates"],
            },
            handler=_suggest_divergence_points,
        ),
    ]
