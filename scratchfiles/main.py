from __future__ import annotations

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from scratchfiles.api import router
from scratchfiles.core.settings import settings
from scratchfiles.lifespan.main import lifespan
from scratchfiles.middleware.exception import (
    tracker_closed_exception_handler,
    validation_exception_handler,
)
from scratchfiles.services.temp_file import TrackerClosedError


def create_application() -> FastAPI:
    app = FastAPI(title=settings.app_name,
                  version=settings.app_version, lifespan=lifespan)

    app.add_exception_handler(RequestValidationError,
                              validation_exception_handler)
    app.add_exception_handler(TrackerClosedError,
                              tracker_closed_exception_handler)
    app.include_router(router)
    return app


app = create_application()


@app.get("/")
async def root():
    """Service name and version, for health checks."""
    return {"name": settings.app_name, "version": settings.app_version}
