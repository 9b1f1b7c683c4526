"""Palette API - FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map PaletteError -> structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Adapters (search client, history store) built on startup via lifespan

Design Decisions:
    - Lifespan over @app.on_event: cleaner cleanup of the httpx client and engine
    - Mounted palettes are unmounted on shutdown so no debounce timer outlives the loop
    - Idle palettes (tab gone without DELETE) are swept on an interval
"""

import asyncio
import logging
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from palette import __version__
from palette.api import dependencies
from palette.api.error_handlers import register_error_handlers
from palette.api.routes import health, palette_sessions
from palette.config import get_settings
from palette.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    await dependencies.configure(settings)
    sweeper = asyncio.create_task(palette_sessions.sweep_forever(
        settings.session_idle_timeout_seconds, settings.session_sweep_interval_seconds,
    ))
    logger.info("Palette API started")
    yield
    logger.info("Palette API shutting down")
    sweeper.cancel()
    with suppress(asyncio.CancelledError):
        await sweeper
    for session_id in list(palette_sessions._sessions):
        await palette_sessions.unmount(session_id)
    await dependencies.release()


app = FastAPI(title="Palette API", version=__version__, lifespan=lifespan)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(palette_sessions.router)

register_error_handlers(app)
