"""
Error taxonomy for the Parallel You service.

Every error carries a machine-readable ``code`` so the API layer can map it
to a response without inspecting messages.
"""

from typing import List, Optional


class ParallelUniverseError(Exception):
    """Base class for all service errors."""

    code = "parallel_universe_error"


class InvalidConfiguration(ParallelUniverseError):
    """Raised when agent configuration fails validation. Fatal at startup."""

    code = "invalid_configuration"

    def __init__(self, message: str, errors: Optional[List[dict]] = None):
        super().__init__(message)
        self.errors = errors or []


class UniverseNotFound(ParallelUniverseError):
    """Raised when an operation references an unknown universe id."""

    code = "universe_not_found"

    def __init__(self, universe_id: str):
        super().__init__(f"Universe not found: {universe_id}")
        self.universe_id = universe_id


class InsufficientUniverses(ParallelUniverseError):
    """Raised when fewer than two universes resolve for a comparison."""

    code = "insufficient_universes"

    def __init__(self, requested: List[str], resolved: List[str]):
        super().__init__(
            f"Need at least 2 valid universes to compare, "
            f"got {len(resolved)} of {len(requested)} requested"
        )
        self.requested = requested
        self.resolved = resolved


class CapabilityUnavailable(ParallelUniverseError):
    """Raised when a forced capability is not registered with the router."""

    code = "capability_unavailable"

    def __init__(self, capability: str):
        super().__init__(f"Capability not registered: {capability}")
        self.capability = capability


class ModelServiceFailure(ParallelUniverseError):
    """Opaque upstream failure from the Model Service."""

    code = "model_service_failure"


class UniverseIdCollision(ParallelUniverseError):
    """Raised when a freshly generated universe id already exists in the store."""

    code = "invalid_state"

    def __init__(self, universe_id: str):
        super().__init__(f"Universe id already exists: {universe_id}")
        self.universe_id = universe_id
