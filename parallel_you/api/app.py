"""
Parallel You API — FastAPI endpoints.

Exposes the orchestrator's lifecycle operations via a JSON API:
- Health status
- Universe creation and lookup
- Exploration and comparison
- Conversations with parallel selves
- Timelines and personality analysis
"""

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, List, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from parallel_you.configuration.settings import Settings, get_settings
from parallel_you.errors import (
    CapabilityUnavailable,
    InsufficientUniverses,
    ModelServiceFailure,
    ParallelUniverseError,
    UniverseIdCollision,
    UniverseNotFound,
)
from parallel_you.orchestrator.orchestrator import (
    UniverseOrchestrator,
    initialize_orchestrator,
)

logger = logging.getLogger(__name__)

AGENT_NAME = "parallel-you-agent"

ERROR_STATUS = {
    UniverseNotFound: 404,
    UniverseIdCollision: 409,
    InsufficientUniverses: 422,
    ModelServiceFailure: 502,
    CapabilityUnavailable: 503,
}


# --- Request/Response Models ---

class UniverseCreateRequest(BaseModel):
    user_id: str
    base_profile: Any
    divergence_point: Optional[str] = None


class CompareRequest(BaseModel):
    universe_ids: List[str]


class ChatRequest(BaseModel):
    message: str


# --- Application Factory ---

def _exit_on_unhandled(loop: asyncio.AbstractEventLoop, context: dict) -> None:
    """Loop exception handler: an unhandled asynchronous fault ends the process."""
    logger.critical(
        "Unhandled asynchronous fault: %s",
        context.get("message"),
        exc_info=context.get("exception"),
    )
    os._exit(1)


def create_app(
    orchestrator: Optional[UniverseOrchestrator] = None,
    settings: Optional[Settings] = None,
    exit_on_async_fault: bool = False,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Without an injected orchestrator one is built from settings at startup;
    any failure there aborts startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if exit_on_async_fault:
            asyncio.get_running_loop().set_exception_handler(_exit_on_unhandled)
        if app.state.orchestrator is None:
            app.state.orchestrator = initialize_orchestrator(
                settings or get_settings()
            )
            logger.info("Parallel Agent initialized successfully")
        try:
            yield
        finally:
            await app.state.orchestrator.store.close()

    app = FastAPI(
        title="Parallel You API",
        description="Generate, explore and converse with parallel universe selves",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.orchestrator = orchestrator

    def get_orchestrator() -> UniverseOrchestrator:
        return app.state.orchestrator

    @app.exception_handler(ParallelUniverseError)
    async def handle_service_error(request: Request, exc: ParallelUniverseError):
        status = next(
            (code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)),
            500,
        )
        if status >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status,
            content={"detail": str(exc), "error": exc.code},
        )

    # === HEALTH ===

    @app.get("/health")
    def health():
        return {
            "status": "healthy",
            "timestamp": datetime.utcnow().isoformat(),
            "agent": AGENT_NAME,
        }

    # === UNIVERSES ===

    @app.post("/universes")
    async def create_universe(req: UniverseCreateRequest):
        """Generate and store a new parallel universe."""
        created = await get_orchestrator().create_universe(
            owner_id=req.user_id,
            base_profile=req.base_profile,
            divergence_point=req.divergence_point,
        )
        return created.model_dump(mode="json")

    @app.post("/universes/compare")
    async def compare_universes(req: CompareRequest):
        """Compare two or more universes. Unknown ids are skipped."""
        response = await get_orchestrator().compare_universes(req.universe_ids)
        return response.model_dump(mode="json")

    @app.get("/universes/{universe_id}")
    async def get_universe(universe_id: str):
        universe = await get_orchestrator().get_universe(universe_id)
        return universe.model_dump(mode="json")

    @app.get("/users/{user_id}/universes")
    async def list_universes(user_id: str):
        """All universes created by a user."""
        universes = await get_orchestrator().list_universes(user_id)
        return [u.model_dump(mode="json") for u in universes]

    @app.post("/universes/{universe_id}/explore")
    async def explore_universe(universe_id: str):
        response = await get_orchestrator().explore_universe(universe_id)
        return response.model_dump(mode="json")

    # === CONVERSATIONS ===

    @app.post("/universes/{universe_id}/chat")
    async def chat_with_parallel_self(universe_id: str, req: ChatRequest):
        """Talk to the parallel self living in a universe."""
        response = await get_orchestrator().chat_with_parallel_self(
            universe_id, req.message
        )
        return response.model_dump(mode="json")

    @app.get("/universes/{universe_id}/conversations")
    async def get_conversation(universe_id: str):
        entries = await get_orchestrator().get_conversation(universe_id)
        return [e.model_dump(mode="json") for e in entries]

    # === ANALYSIS ===

    @app.post("/universes/{universe_id}/timeline")
    async def generate_timeline(universe_id: str):
        response = await get_orchestrator().generate_timeline(universe_id)
        return response.model_dump(mode="json")

    @app.post("/universes/{universe_id}/personality")
    async def analyze_personality(universe_id: str):
        response = await get_orchestrator().analyze_personality(universe_id)
        return response.model_dump(mode="json")

    return app


# Default application instance
app = create_app()
