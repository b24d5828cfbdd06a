"""Speedster API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map SpeedsterError → plain-text body + status
    - Database connected on startup via lifespan; a failed connect aborts startup
    - DatabaseManager stored on app.state, closed on shutdown

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - uvicorn log_config=None: setup_logging owns the handlers
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from speedster.api.error_handlers import register_error_handlers
from speedster.api.routes import health, scans
from speedster.config import get_settings
from speedster.infrastructure.database import DatabaseManager
from speedster.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    app.state.db = await DatabaseManager.connect(
        settings.mongo_uri,
        database=settings.mongo_database,
        collection=settings.mongo_collection,
        connect_timeout_seconds=settings.mongo_connect_timeout_seconds,
        insert_timeout_seconds=settings.mongo_insert_timeout_seconds,
    )
    logger.info("Speedster API started")
    yield
    logger.info("Speedster API shutting down")
    app.state.db.close()
    app.state.db = None


app = FastAPI(title="Speedster API", version="1.0.0", lifespan=lifespan)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(scans.router)

register_error_handlers(app)


def run() -> None:
    """Serve the API on the configured port."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    logger.info(f"Listening on :{settings.port}")
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    run()
