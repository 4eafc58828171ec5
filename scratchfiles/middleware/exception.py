from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger

from scratchfiles.services.temp_file import TrackerClosedError


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Invalid request: {exc.errors()}")
    return JSONResponse(
        status_code=422,
        content={"detail": exc.errors(), "body": exc.body},
    )


async def tracker_closed_exception_handler(request: Request, exc: TrackerClosedError):
    logger.warning(f"Temp file tracker unavailable: {exc}")
    return JSONResponse(
        status_code=503,
        content={"detail": "Temp file tracker is not available"},
    )
