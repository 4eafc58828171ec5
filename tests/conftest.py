from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from scratchfiles.core.settings import settings
from scratchfiles.services.temp_file import TempFileTracker
from tests.helpers import make_config


@pytest.fixture
def tracker(tmp_path: Path):
    service = TempFileTracker(make_config(tmp_path))
    service.initialize()
    try:
        yield service
    finally:
        service.shutdown()


@pytest.fixture
def client(tmp_path: Path, monkeypatch):
    """
    Create a TestClient instance.
    The TestClient context manager triggers the FastAPI lifespan events
    (startup and shutdown), which builds and closes the temp file tracker.
    """
    monkeypatch.setattr(settings, "tmp_root", str(tmp_path))
    monkeypatch.setattr(settings, "log_dir", str(tmp_path / "log"))

    from scratchfiles.main import app

    with TestClient(app) as c:
        yield c
