from __future__ import annotations

import queue
import threading
import time
from collections.abc import Callable

from loguru import logger

_STOP = object()


class Reaper:
    """
    Single background worker deleting tracked files.

    Entry ids arrive through `submit()` (called from reachability finalizers).
    While idle the worker runs the optional `sweep` every `interval_seconds`.
    `stop()` drains whatever is queued, then joins the worker.
    """

    def __init__(
        self,
        reclaim: Callable[[str], object],
        sweep: Callable[[float], object] | None = None,
        interval_seconds: float = 1.0,
        name: str = "temp-file-reaper",
    ) -> None:
        self._reclaim = reclaim
        self._sweep = sweep
        self._interval_seconds = interval_seconds
        self._name = name
        self._queue: queue.SimpleQueue[object] = queue.SimpleQueue()
        self._thread: threading.Thread | None = None
        self._stop_lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
        self._thread.start()

    def submit(self, entry_id: str) -> None:
        self._queue.put(entry_id)

    def stop(self) -> None:
        with self._stop_lock:
            thread = self._thread
            if thread is None:
                return
            self._queue.put(_STOP)
            thread.join()
            self._thread = None

    def _run(self) -> None:
        logger.debug("[TMP] Reaper started", name=self._name)
        last_sweep = time.monotonic()
        try:
            while True:
                try:
                    item = self._queue.get(timeout=self._interval_seconds)
                except queue.Empty:
                    item = None
                if item is _STOP:
                    break
                if item is not None:
                    self._reclaim_one(item)
                # A busy queue must not starve the expiry sweep.
                now = time.monotonic()
                if now - last_sweep >= self._interval_seconds:
                    last_sweep = now
                    self._run_sweep()
            self._drain()
        finally:
            logger.debug("[TMP] Reaper stopped", name=self._name)

    def _drain(self) -> None:
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                return
            if item is not _STOP:
                self._reclaim_one(item)

    def _reclaim_one(self, entry_id: object) -> None:
        try:
            self._reclaim(entry_id)
        except Exception:
            logger.exception("[TMP] Reclamation failed", entry_id=entry_id)

    def _run_sweep(self) -> None:
        if self._sweep is None:
            return
        try:
            self._sweep(time.monotonic())
        except Exception:
            logger.exception("[TMP] Expiry sweep failed")
