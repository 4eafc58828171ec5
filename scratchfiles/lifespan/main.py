from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from scratchfiles.core.logger import setup_logging, shutdown_logging
from scratchfiles.core.settings import settings
from scratchfiles.services.temp_file import TempFileTracker


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.log_dir, settings.debug_mode)
    app.state.temp_files = None
    try:
        logger.debug("[LIFESPAN] Initialising temp file tracker...")

        app.state.temp_files = await TempFileTracker.LifespanTasks.ctor()

        yield

    finally:
        logger.debug("[LIFESPAN] Shutting down...")

        tracker = app.state.temp_files
        app.state.temp_files = None
        try:
            if tracker is not None:
                await TempFileTracker.LifespanTasks.dtor(tracker)
                logger.debug("[LIFESPAN] Temp file tracker released.")

            logger.debug("[LIFESPAN] Application shutdown completed.")
        finally:
            await shutdown_logging()
