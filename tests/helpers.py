from __future__ import annotations

import gc
import time
from collections.abc import Callable
from pathlib import Path

from scratchfiles.services.temp_file import TempFileConfig

THRESHOLD = 16


def wait_until(predicate: Callable[[], bool], timeout: float = 3.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        gc.collect()
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def make_config(tmp_path: Path, **overrides) -> TempFileConfig:
    values = {
        "root": str(tmp_path / "xwiki-tmp"),
        "size_threshold": THRESHOLD,
        "sweep_interval_seconds": 0.05,
    }
    values.update(overrides)
    return TempFileConfig(**values)
