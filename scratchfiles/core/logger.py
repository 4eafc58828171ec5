from __future__ import annotations

import logging
import sys
import threading
from pathlib import Path

from loguru import logger

_LOGGING_LOCK = threading.Condition()
_LOGGING_REFCOUNT = 0
_LOGGING_INITIALIZING = False
_LOGGING_SHUTTING_DOWN = False
_LOGGING_CONFIG: tuple[str, bool] | None = None


class InterceptHandler(logging.Handler):
    def emit(self, record: logging.LogRecord):
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def _install_sinks(log_dir: Path, debug: bool) -> None:
    logger.remove()

    console_level = "DEBUG" if debug else "INFO"

    logger.configure(extra={})
    logger.add(
        sys.stderr,
        level=console_level,
        colorize=True,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level> {extra}"
    )

    log_file_path = log_dir / "scratchfiles_{time}.log"

    logger.add(
        log_file_path,
        level="DEBUG",
        format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message} | {extra}",
        rotation="00:00",
        retention="7 days",
        compression="zip",
        enqueue=True,
        backtrace=True,
        diagnose=True,
    )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)


def setup_logging(log_dir: str | Path, debug: bool) -> None:
    """
    Install loguru sinks once per process.

    Calls are reference counted: nested setups reuse the first configuration
    and every call must be paired with `shutdown_logging()`.
    """
    global _LOGGING_REFCOUNT, _LOGGING_INITIALIZING, _LOGGING_CONFIG

    requested = (str(Path(log_dir)), bool(debug))
    with _LOGGING_LOCK:
        while _LOGGING_INITIALIZING or _LOGGING_SHUTTING_DOWN:
            _LOGGING_LOCK.wait()
        if _LOGGING_REFCOUNT > 0:
            if _LOGGING_CONFIG != requested:
                logger.warning(
                    "Logging already configured; ignoring new settings",
                    active=_LOGGING_CONFIG,
                    requested=requested,
                )
            _LOGGING_REFCOUNT += 1
            return
        _LOGGING_INITIALIZING = True

    try:
        _install_sinks(Path(log_dir), debug)
    except BaseException:
        with _LOGGING_LOCK:
            _LOGGING_INITIALIZING = False
            _LOGGING_CONFIG = None
            _LOGGING_LOCK.notify_all()
        raise

    with _LOGGING_LOCK:
        _LOGGING_CONFIG = requested
        _LOGGING_REFCOUNT = 1
        _LOGGING_INITIALIZING = False
        _LOGGING_LOCK.notify_all()
    logger.debug("Here logger stands.")


async def shutdown_logging() -> None:
    global _LOGGING_REFCOUNT, _LOGGING_SHUTTING_DOWN, _LOGGING_CONFIG

    with _LOGGING_LOCK:
        if _LOGGING_REFCOUNT == 0:
            return
        _LOGGING_REFCOUNT -= 1
        if _LOGGING_REFCOUNT > 0:
            return
        _LOGGING_SHUTTING_DOWN = True

    try:
        logger.debug("Flushing all log messages before shutdown...")
        await logger.complete()
        logger.remove()
    finally:
        with _LOGGING_LOCK:
            _LOGGING_CONFIG = None
            _LOGGING_SHUTTING_DOWN = False
            _LOGGING_LOCK.notify_all()
