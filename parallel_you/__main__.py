"""
Process entry point: ``python -m parallel_you``.

Startup is all-or-nothing. Settings, agent configuration and the universe
store are initialized before the server binds; any failure exits with status 1.
"""

import logging
import sys

import uvicorn

from parallel_you.api.app import create_app
from parallel_you.configuration.settings import get_settings
from parallel_you.orchestrator.orchestrator import initialize_orchestrator

logger = logging.getLogger("parallel_you")


def _log_uncaught(exc_type, exc_value, exc_traceback) -> None:
    logger.critical(
        "Uncaught exception", exc_info=(exc_type, exc_value, exc_traceback)
    )
    sys.exit(1)


def main() -> None:
    try:
        settings = get_settings()
    except Exception:
        logging.basicConfig(level=logging.INFO)
        logger.exception("Failed to load settings")
        sys.exit(1)

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    sys.excepthook = _log_uncaught

    try:
        orchestrator = initialize_orchestrator(settings)
    except Exception:
        logger.exception("Failed to initialize application")
        sys.exit(1)
    logger.info("Parallel Agent initialized successfully")

    app = create_app(
        orchestrator=orchestrator,
        settings=settings,
        exit_on_async_fault=True,
    )
    logger.info(
        "Parallel You server running on http://localhost:%d", settings.port
    )
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
