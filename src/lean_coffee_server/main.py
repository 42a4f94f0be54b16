"""
FastAPI application entry point for the Lean Coffee server.

Provides the REST API through which participants create sessions, manage
tickets, run discussion timers and vote. Clients poll for changes.
"""

import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from lean_coffee_core.config import Config, load_config
from lean_coffee_core.core.logging import get_logger, setup_logging
from lean_coffee_server.api import (
    continuation_router,
    sessions_router,
    tickets_router,
    voting_router,
)
from lean_coffee_server.dependencies import close_record_store, open_record_store

config_path = os.getenv("CONFIG_PATH")
config: Config = load_config(Path(config_path) if config_path else None)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):  # noqa: ARG001
    """Configure logging and open the record store for the life of the app."""
    setup_logging(
        level=config.get_log_level(),
        format_type=config.get_log_format(),
        log_file=Path(config.logging.file) if config.logging.file else None,
    )
    await open_record_store(config)
    logger.info(
        "Lean Coffee server started",
        extra={"context": {"version": config.version, "backend": config.storage.backend}},
    )

    yield

    await close_record_store()
    logger.info("Lean Coffee server stopped")


app = FastAPI(
    title="Lean Coffee Server",
    description="Session coordination engine for time-boxed Lean Coffee discussions",
    version=config.version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.get_cors_origins(),
    allow_credentials=config.server.cors.allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(sessions_router, prefix="/api/v1")
app.include_router(tickets_router, prefix="/api/v1")
app.include_router(voting_router, prefix="/api/v1")
app.include_router(continuation_router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    """
    Health check endpoint.

    Returns the current status of the server.
    """
    return JSONResponse(
        content={
            "status": "healthy",
            "service": "lean-coffee-server",
            "version": config.version,
            "storage": config.storage.backend,
        }
    )


@app.get("/")
async def root():
    """Return API information."""
    return JSONResponse(
        content={
            "name": "Lean Coffee Server",
            "version": config.version,
            "endpoints": {
                "api": "/api/v1",
                "health": "/health",
                "docs": "/docs",
            },
        }
    )


def main():
    """Main entry point for the Lean Coffee server."""
    import uvicorn

    uvicorn.run(
        "lean_coffee_server.main:app",
        host=config.server.host,
        port=config.server.port,
    )


if __name__ == "__main__":
    main()
