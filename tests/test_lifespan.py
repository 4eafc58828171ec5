from __future__ import annotations

import pytest
from fastapi import FastAPI

from scratchfiles.lifespan.main import lifespan
from scratchfiles.services.temp_file import InitializationError, TempFileTracker


@pytest.mark.asyncio
async def test_lifespan_startup_error_is_not_masked(monkeypatch):
    def fail_setup_logging(*args, **kwargs):
        raise RuntimeError("setup logging failed")

    monkeypatch.setattr("scratchfiles.lifespan.main.setup_logging", fail_setup_logging)

    app = FastAPI()
    cm = lifespan(app)

    with pytest.raises(RuntimeError, match="setup logging failed"):
        await cm.__aenter__()


@pytest.mark.asyncio
async def test_lifespan_tracker_failure_still_flushes_logging(monkeypatch):
    shutdowns: list[int] = []

    async def failing_ctor(*args, **kwargs):
        raise InitializationError("cannot prepare temp directory")

    async def record_shutdown() -> None:
        shutdowns.append(1)

    monkeypatch.setattr("scratchfiles.lifespan.main.setup_logging", lambda *a, **kw: None)
    monkeypatch.setattr("scratchfiles.lifespan.main.shutdown_logging", record_shutdown)
    monkeypatch.setattr(TempFileTracker.LifespanTasks, "ctor", staticmethod(failing_ctor))

    app = FastAPI()
    cm = lifespan(app)

    with pytest.raises(InitializationError):
        await cm.__aenter__()
    assert shutdowns == [1]
    assert app.state.temp_files is None
