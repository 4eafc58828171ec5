from __future__ import annotations

import asyncio
import tempfile
import threading
import time
import weakref
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from scratchfiles.core.settings import settings
from scratchfiles.services import BaseService

from . import _runtime
from ._directory import TempDirectoryManager
from ._errors import (
    AllocationIOError,
    InitializationError,
    ReclamationIOError,
    TrackerClosedError,
)
from ._item import DeferredFileStream, TempFileHandle, TempFileItemFactory
from ._reaper import Reaper


@dataclass(frozen=True)
class TempFileConfig:
    root: str
    size_threshold: int = 10000
    sweep_interval_seconds: float = 1.0
    entry_ttl_seconds: float = 0

    @classmethod
    def from_settings(cls) -> TempFileConfig:
        parent = settings.tmp_root or tempfile.gettempdir()
        return cls(
            root=str(Path(parent) / settings.tmp_dir_name),
            size_threshold=settings.tmp_size_threshold,
            sweep_interval_seconds=settings.tmp_sweep_interval_seconds,
            entry_ttl_seconds=settings.tmp_entry_ttl_seconds,
        )


@dataclass
class TrackedEntry:
    entry_id: str
    location: Path
    owner_ref: weakref.ref[DeferredFileStream]
    registered_at: float
    finalizer: weakref.finalize | None = None


@dataclass(frozen=True)
class TempFileStats:
    live_count: int
    allocated_total: int
    directory: str
    threshold: int


class TempFileTracker(BaseService):
    """
    Temporary file lifecycle manager.

    - Prepares (and purges) the working directory on `initialize()`.
    - Hands out handles that stay in memory up to the size threshold.
    - Tracks every handle that spilled to disk until it is released,
      becomes unreachable, expires, or the tracker shuts down.
    - Deletion of each tracked file happens exactly once.
    """

    class LifespanTasks(BaseService.LifespanTasks):
        @staticmethod
        async def ctor(config: TempFileConfig | None = None) -> TempFileTracker:
            tracker = TempFileTracker(config or TempFileConfig.from_settings())
            await asyncio.to_thread(tracker.initialize)
            return tracker

        @staticmethod
        async def dtor(instance: TempFileTracker) -> None:
            await asyncio.to_thread(instance.shutdown)

    def __init__(self, config: TempFileConfig) -> None:
        self._validate_config(config)
        self._config = config
        self._directory = TempDirectoryManager(config.root)
        self._factory: TempFileItemFactory | None = None
        self._reaper: Reaper | None = None

        self._lock = threading.Lock()
        self._entries: dict[str, TrackedEntry] = {}
        self._allocated_total = 0
        self._closed = False

    def __enter__(self) -> TempFileTracker:
        self.initialize()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

    @staticmethod
    def _validate_config(config: TempFileConfig) -> None:
        if not config.root:
            raise ValueError("root must be non-empty")
        if config.sweep_interval_seconds <= 0:
            raise ValueError("sweep_interval_seconds must be > 0")
        if config.entry_ttl_seconds < 0:
            raise ValueError("entry_ttl_seconds must be >= 0")

    # ------------------------------------------------------------------ #
    # Lifecycle                                                           #
    # ------------------------------------------------------------------ #

    def initialize(self) -> None:
        with self._lock:
            if self._closed:
                raise TrackerClosedError("TempFileTracker is closed")
            if self._factory is not None:
                return
            directory = self._directory.prepare()
            try:
                factory = TempFileItemFactory(self._config.size_threshold, directory)
            except ValueError as exc:
                self._directory.release()
                raise InitializationError(
                    "Cannot construct temp file item factory"
                ) from exc
            sweep = None
            if self._config.entry_ttl_seconds > 0:
                sweep = self._sweep_expired
            reaper = Reaper(
                self._reclaim_unreachable,
                sweep,
                interval_seconds=self._config.sweep_interval_seconds,
            )
            reaper.start()
            self._factory = factory
            self._reaper = reaper

        logger.info(
            "[TMP] TempFileTracker initialized",
            root=str(directory),
            threshold=self._config.size_threshold,
        )

    def shutdown(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            reaper, self._reaper = self._reaper, None

        if reaper is not None:
            reaper.stop()

        with self._lock:
            remaining = list(self._entries)
        for entry_id in remaining:
            self._reclaim(entry_id, reason="shutdown")

        self._directory.release()
        logger.debug(
            "[TMP] TempFileTracker shutdown completed",
            allocated_total=self._allocated_total,
            reclaimed_on_shutdown=len(remaining),
        )

    # ------------------------------------------------------------------ #
    # Public API                                                          #
    # ------------------------------------------------------------------ #

    @property
    def directory(self) -> Path:
        return self._directory.root

    @property
    def threshold(self) -> int:
        return self._config.size_threshold

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def allocated_total(self) -> int:
        return self._allocated_total

    def allocate(self) -> TempFileHandle:
        with self._lock:
            factory = self._assert_open()

        handle = factory.create_item(on_spill=self._track, on_release=self.release)
        try:
            handle.open()
        except OSError as exc:
            logger.opt(exception=exc).error(
                "[TMP] Could not create temp file, check write access to the temp directory",
                repository=str(factory.repository),
            )
            raise AllocationIOError(
                f"Could not open temp file stream in '{factory.repository}'"
            ) from exc

        with self._lock:
            self._allocated_total += 1
        return handle

    def release(self, handle: TempFileHandle) -> bool:
        """Delete `handle`'s backing file now. False if nothing was tracked."""
        return self._reclaim(handle.id, reason="released")

    def live_count(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> TempFileStats:
        with self._lock:
            return TempFileStats(
                live_count=len(self._entries),
                allocated_total=self._allocated_total,
                directory=str(self._directory.root),
                threshold=self._config.size_threshold,
            )

    # ------------------------------------------------------------------ #
    # Tracking and reclamation                                            #
    # ------------------------------------------------------------------ #

    def _assert_open(self) -> TempFileItemFactory:
        if self._closed:
            raise TrackerClosedError("TempFileTracker is closed")
        if self._factory is None:
            raise TrackerClosedError("TempFileTracker is not initialized")
        return self._factory

    def _track(self, entry_id: str, owner: DeferredFileStream, location: Path) -> None:
        with self._lock:
            if self._closed or self._reaper is None:
                raise TrackerClosedError(
                    "TempFileTracker is closed; refusing to track new temp files"
                )
            finalizer = weakref.finalize(owner, self._reaper.submit, entry_id)
            finalizer.atexit = False
            self._entries[entry_id] = TrackedEntry(
                entry_id=entry_id,
                location=location,
                owner_ref=weakref.ref(owner),
                registered_at=time.monotonic(),
                finalizer=finalizer,
            )
        logger.debug("[TMP] Tracking temp file", name=location.name)

    def _reclaim_unreachable(self, entry_id: str) -> bool:
        return self._reclaim(entry_id, reason="unreachable")

    def _sweep_expired(self, now: float) -> None:
        cutoff = now - self._config.entry_ttl_seconds
        with self._lock:
            expired = [
                entry.entry_id
                for entry in self._entries.values()
                if entry.registered_at <= cutoff
            ]
        for entry_id in expired:
            self._reclaim(entry_id, reason="expired")

    def _reclaim(self, entry_id: str, reason: str) -> bool:
        # Popping under the lock is the single guard against double deletion.
        with self._lock:
            entry = self._entries.pop(entry_id, None)
        if entry is None:
            return False

        if entry.finalizer is not None:
            entry.finalizer.detach()
        owner = entry.owner_ref()
        if owner is not None:
            try:
                owner.close()
            except OSError:
                logger.exception(
                    "[TMP] Failed to close temp file stream before deletion",
                    name=entry.location.name,
                )

        try:
            self._delete_location(entry.location)
        except ReclamationIOError:
            logger.exception(
                "[TMP] Failed to delete temp file",
                name=entry.location.name,
                reason=reason,
            )
            return True
        logger.debug(
            "[TMP] Temp file reclaimed",
            name=entry.location.name,
            reason=reason,
        )
        return True

    @staticmethod
    def _delete_location(location: Path) -> None:
        try:
            _runtime.remove_file(location)
        except OSError as exc:
            raise ReclamationIOError(
                f"Cannot delete temp file '{location.name}'"
            ) from exc
