# src/hookwatch/server/app.py
"""
FastAPI application for the hookwatch dashboard server.

The application owns one EventPipeline for its lifetime: the lifespan handler
starts file ingestion on startup and flushes/stops it on shutdown. New
batches are pushed to WebSocket clients through the Broadcaster.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..config import HookWatchConfig
from ..exceptions import HookWatchError
from ..logging_config import log_display
from ..pipeline import EventPipeline
from .broadcaster import Broadcaster
from .routes import router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Starts ingestion on startup and releases it on shutdown.

    A failure to start file watching leaves the server up in a degraded
    state (queries answer from an empty pipeline).
    """
    pipeline: EventPipeline = app.state.pipeline
    broadcaster: Broadcaster = app.state.broadcaster
    log_display(logger, logging.INFO, "hookwatch server starting up...")

    pipeline.subscribe(broadcaster.publish)
    try:
        await pipeline.start()
        log_display(logger, logging.INFO, "File streaming started")
    except (HookWatchError, OSError) as e:
        logger.critical(f"Failed to start event ingestion: {e}", exc_info=True)
        logger.warning("Server will start but no new events will be received")

    yield

    log_display(logger, logging.INFO, "hookwatch server shutting down...")
    await broadcaster.close()
    try:
        await pipeline.stop()
    except Exception as e:
        logger.error(f"Error during pipeline shutdown: {e}", exc_info=True)
    logger.info("Server shutdown complete")


def create_app(
    config: HookWatchConfig | None = None,
    pipeline: EventPipeline | None = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        config: Configuration; defaults are used when omitted.
        pipeline: Pre-built pipeline (tests); built from ``config`` otherwise.
    """
    config = config or (pipeline.config if pipeline else HookWatchConfig())

    app = FastAPI(
        title="hookwatch",
        description="Live view of AI coding-assistant hook events",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.pipeline = pipeline or EventPipeline(config)
    app.state.broadcaster = Broadcaster()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)
    return app
