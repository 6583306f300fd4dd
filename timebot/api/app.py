"""
Status API — Local HTTP surface next to the bot.

Built by ``create_app`` around the same ConfigStore and Supervisor the bot
uses. Bound to localhost by default; there is no authentication.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from timebot import __version__
from timebot.api.routes import health, timezones
from timebot.config.configuration import Configuration
from timebot.keeper.supervisor import Supervisor
from timebot.services.config_store import ConfigStore

logger = logging.getLogger("timebot.api")


def create_app(
    store: ConfigStore,
    supervisor: Supervisor,
    persist: Optional[Callable[[Configuration], None]] = None,
    is_connected: Callable[[], bool] = lambda: False,
) -> FastAPI:
    """Build the status API over injected handles."""
    app = FastAPI(
        title="Time Role Keeper",
        description="Local-time role synchronization status",
        version=__version__,
        docs_url="/docs",
        redoc_url=None,
    )
    app.state.store = store
    app.state.supervisor = supervisor
    app.state.persist = persist
    app.state.is_connected = is_connected

    @app.middleware("http")
    async def add_headers(request: Request, call_next):
        """Add the version header to all responses."""
        response = await call_next(request)
        response.headers["X-TimeBot-Version"] = __version__
        return response

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler."""
        logger.error("Unhandled error on %s: %s", request.url.path, exc)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_error",
                "message": str(exc),
                "path": str(request.url.path),
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )

    app.include_router(health.router)
    app.include_router(timezones.router)
    return app
