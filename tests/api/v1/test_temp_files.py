from pathlib import Path

from scratchfiles.core.settings import settings
from tests.helpers import wait_until


def test_temp_files_stats_endpoint(client, tmp_path: Path):
    response = client.get("/api/v1/temp-files/")
    assert response.status_code == 200

    data = response.json()
    assert data["live_count"] == 0
    assert data["allocated_total"] == 0
    assert data["directory"] == str(tmp_path / "xwiki-tmp")
    assert data["threshold"] == 10000


def test_temp_files_stats_reflect_outstanding_files(client):
    tracker = client.app.state.temp_files
    handle = tracker.allocate()
    handle.write(b"x" * (tracker.threshold + 1))

    data = client.get("/api/v1/temp-files/").json()
    assert data["live_count"] == 1
    assert data["allocated_total"] == 1

    del handle
    assert wait_until(
        lambda: client.get("/api/v1/temp-files/").json()["live_count"] == 0
    )


def test_temp_files_endpoint_reports_unavailable_after_shutdown(client):
    client.app.state.temp_files.shutdown()

    response = client.get("/api/v1/temp-files/")
    assert response.status_code == 503
    assert response.json() == {"detail": "Temp file tracker is not available"}


def test_root_reports_name_and_version(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == {"name": settings.app_name, "version": settings.app_version}

    assert client.get("/api/").status_code == 404
