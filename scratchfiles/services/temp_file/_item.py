from __future__ import annotations

import errno
import io
import itertools
import os
import threading
import uuid
from collections.abc import Callable
from functools import partial
from pathlib import Path

from . import _runtime

type SpillHook = Callable[[str, DeferredFileStream, Path], None]
type ReleaseHook = Callable[[TempFileHandle], bool]


class DeferredFileStream(io.RawIOBase):
    """
    Write-only stream that buffers in memory up to `threshold` bytes.

    The write that would push the total past the threshold creates the
    backing file, copies the buffer into it and continues on disk.
    """

    def __init__(
        self,
        threshold: int,
        location: Path,
        on_spill: Callable[[DeferredFileStream, Path], None] | None = None,
    ) -> None:
        super().__init__()
        self._threshold = threshold
        self._candidate = location
        self._on_spill = on_spill
        self._memory: io.BytesIO | None = io.BytesIO()
        self._file: io.BufferedWriter | None = None
        self._written = 0

    def writable(self) -> bool:
        return True

    @property
    def in_memory(self) -> bool:
        return self._file is None

    @property
    def location(self) -> Path | None:
        if self._file is None:
            return None
        return self._candidate

    @property
    def size(self) -> int:
        return self._written

    def memory_bytes(self) -> bytes | None:
        if self._memory is None:
            return None
        return self._memory.getvalue()

    def discard_memory(self) -> None:
        if self._memory is not None:
            self._memory = io.BytesIO()

    def write(self, b) -> int:
        if self.closed:
            raise ValueError("write to closed temp file stream")
        data = bytes(b)
        if self._file is None and self._written + len(data) > self._threshold:
            self._spill()
        if self._file is not None:
            self._file.write(data)
            # Readers of `location` must see every byte written so far.
            self._file.flush()
        else:
            self._memory.write(data)
        self._written += len(data)
        return len(data)

    def flush(self) -> None:
        if self._file is not None and not self._file.closed:
            self._file.flush()

    def close(self) -> None:
        if self.closed:
            return
        try:
            if self._file is not None:
                self._file.close()
        finally:
            super().close()

    def _spill(self) -> None:
        handle = _runtime.open_new_file(self._candidate)
        try:
            handle.write(self._memory.getvalue())
            if self._on_spill is not None:
                self._on_spill(self, self._candidate)
        except BaseException:
            handle.close()
            _runtime.remove_file(self._candidate)
            raise
        _runtime.tighten_file_permissions(self._candidate)
        self._file = handle
        self._memory = None


class TempFileHandle:
    """An anonymous scratch file: memory first, disk past the threshold."""

    def __init__(
        self,
        item_id: str,
        threshold: int,
        candidate: Path,
        on_spill: SpillHook | None = None,
        on_release: ReleaseHook | None = None,
    ) -> None:
        self.id = item_id
        self.threshold = threshold
        self._candidate = candidate
        self._on_spill = on_spill
        self._on_release = on_release
        self._stream: DeferredFileStream | None = None
        self._deleted = False

    def __repr__(self) -> str:
        return (
            f"TempFileHandle(id={self.id!r}, size={self.size}, "
            f"location={self.location!r})"
        )

    def __enter__(self) -> TempFileHandle:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.delete()

    def open(self) -> DeferredFileStream:
        if self._stream is not None:
            return self._stream
        repository = self._candidate.parent
        if not repository.is_dir():
            raise FileNotFoundError(
                errno.ENOENT, "Temp repository does not exist", str(repository)
            )
        if not os.access(repository, os.W_OK | os.X_OK):
            raise PermissionError(
                errno.EACCES, "Temp repository is not writable", str(repository)
            )
        hook = None
        if self._on_spill is not None:
            hook = partial(self._on_spill, self.id)
        self._stream = DeferredFileStream(self.threshold, self._candidate, on_spill=hook)
        return self._stream

    @property
    def stream(self) -> DeferredFileStream:
        if self._stream is None:
            raise ValueError("Temp file stream is not open")
        return self._stream

    @property
    def location(self) -> Path | None:
        if self._stream is None:
            return None
        return self._stream.location

    @property
    def in_memory(self) -> bool:
        return self.location is None

    @property
    def size(self) -> int:
        if self._stream is None:
            return 0
        return self._stream.size

    @property
    def deleted(self) -> bool:
        return self._deleted

    def write(self, data: bytes | bytearray | memoryview) -> int:
        return self.stream.write(data)

    def get(self) -> bytes:
        if self._deleted:
            raise ValueError("Temp file has been deleted")
        if self._stream is None:
            return b""
        data = self._stream.memory_bytes()
        if data is not None:
            return data
        self._stream.flush()
        return self._stream.location.read_bytes()

    def close(self) -> None:
        if self._stream is not None:
            self._stream.close()

    def delete(self) -> None:
        if self._deleted:
            return
        self._deleted = True
        self.close()
        if self._stream is None:
            return
        location = self._stream.location
        if location is None:
            self._stream.discard_memory()
        elif self._on_release is not None:
            self._on_release(self)
        else:
            _runtime.remove_file(location)


class TempFileItemFactory:
    """Creates anonymous handles named `upload_<uid>_<counter>.tmp`."""

    def __init__(self, threshold: int, repository: str | Path) -> None:
        if threshold < 0:
            raise ValueError("threshold must be >= 0")
        self.threshold = threshold
        self.repository = Path(repository)
        if not self.repository.is_dir():
            raise ValueError(f"repository '{self.repository}' is not a directory")
        self._uid = str(uuid.uuid4()).replace("-", "_")
        self._counter = itertools.count()
        self._counter_lock = threading.Lock()

    def _next_name(self) -> str:
        with self._counter_lock:
            n = next(self._counter)
        return f"upload_{self._uid}_{n:08d}.tmp"

    def create_item(
        self,
        on_spill: SpillHook | None = None,
        on_release: ReleaseHook | None = None,
    ) -> TempFileHandle:
        return TempFileHandle(
            uuid.uuid4().hex,
            self.threshold,
            self.repository / self._next_name(),
            on_spill=on_spill,
            on_release=on_release,
        )
