"""Programmatic uvicorn entry point for SecureCoda.

Reads host and port from the loaded config (127.0.0.1:3001 by default, PORT env
var wins) and starts uvicorn with conservative connection limits.

Usage:
    python -m securecoda.run
    securecoda                 # via pyproject.toml [project.scripts]
"""

from __future__ import annotations

import uvicorn

from securecoda.config import load_config
from securecoda.main import LOG_LEVEL, create_app

# ─── Uvicorn defaults ─────────────────────────────────────────────────────────

# New connections receive HTTP 503 when this limit is exceeded.
UVICORN_LIMIT_CONCURRENCY: int = 100

UVICORN_BACKLOG: int = 50

# Low value reduces the Slow Loris attack window.
UVICORN_TIMEOUT_KEEP_ALIVE: int = 5


def main() -> None:
    """Start the SecureCoda server.

    The config is loaded once here and handed to the app, so the lifespan and
    the CORS origins see the same values uvicorn binds with.

    Raises:
        SystemExit: Propagated from load_config() on config errors.
    """
    config = load_config()

    uvicorn.run(
        create_app(config),
        host=config.server.host,
        port=config.server.port,
        log_level=LOG_LEVEL.lower(),
        limit_concurrency=UVICORN_LIMIT_CONCURRENCY,
        backlog=UVICORN_BACKLOG,
        timeout_keep_alive=UVICORN_TIMEOUT_KEEP_ALIVE,
    )


if __name__ == "__main__":
    main()
