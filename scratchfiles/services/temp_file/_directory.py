from __future__ import annotations

import os
import shutil
import stat
from pathlib import Path

from filelock import FileLock
from loguru import logger

from . import _runtime
from ._errors import InitializationError


class TempDirectoryManager:
    """
    Owns the working root for disk-backed temp files.

    - Creates the root when missing (the parent must already exist).
    - Purges leftovers of an unclean previous run, once, at `prepare()`.
    - Holds `<root>.lock` while prepared; a root locked by another live
      process is reused without purging.
    """

    LOCK_SUFFIX = ".lock"

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)
        self._lock_handle: FileLock | None = None
        self._prepared = False

    @property
    def root(self) -> Path:
        return self._root

    @property
    def lock_path(self) -> Path:
        return self._root.with_name(self._root.name + self.LOCK_SUFFIX)

    @property
    def owns_lock(self) -> bool:
        return self._lock_handle is not None

    def prepare(self) -> Path:
        if self._prepared:
            return self._root

        try:
            st = self._root.lstat()
        except FileNotFoundError:
            st = None
        except OSError as exc:
            raise InitializationError(
                f"Cannot inspect temp directory '{self._root}'"
            ) from exc

        if st is not None and not stat.S_ISDIR(st.st_mode):
            raise InitializationError(
                f"Temp directory path '{self._root}' exists and is not a directory"
            )
        if st is None and not self._root.parent.is_dir():
            raise InitializationError(
                f"Parent of temp directory '{self._root}' does not exist"
            )

        try:
            self._lock_handle = _runtime.try_acquire_file_lock(self.lock_path)
        except OSError as exc:
            raise InitializationError(
                f"Cannot lock temp directory '{self._root}'"
            ) from exc

        try:
            if st is None:
                self._create()
            elif self._lock_handle is not None:
                self._purge()
            else:
                logger.info(
                    "[TMP] Temp directory purge skipped (lock held by another process)",
                    root=str(self._root),
                )
            _runtime.tighten_directory_permissions(self._root)
            if not os.access(self._root, os.W_OK | os.X_OK):
                raise InitializationError(
                    f"Temp directory '{self._root}' is not writable"
                )
        except BaseException:
            self.release()
            raise

        self._prepared = True
        logger.debug("[TMP] Temp directory ready", root=str(self._root))
        return self._root

    def release(self) -> None:
        handle, self._lock_handle = self._lock_handle, None
        _runtime.release_file_lock(handle)
        self._prepared = False

    def _create(self) -> None:
        try:
            self._root.mkdir(mode=0o700)
        except FileExistsError:
            # Lost a creation race with a peer; an existing directory is fine.
            if not self._root.is_dir():
                raise InitializationError(
                    f"Temp directory path '{self._root}' exists and is not a directory"
                )
        except OSError as exc:
            raise InitializationError(
                f"Cannot create temp directory '{self._root}'"
            ) from exc
        logger.info("[TMP] Temp directory created", root=str(self._root))

    def _purge(self) -> None:
        try:
            children = list(self._root.iterdir())
        except OSError as exc:
            raise InitializationError(
                f"Cannot list temp directory '{self._root}'"
            ) from exc

        first_error: OSError | None = None
        removed = 0
        for child in children:
            try:
                if child.is_dir() and not child.is_symlink():
                    shutil.rmtree(child)
                else:
                    child.unlink()
                removed += 1
            except FileNotFoundError:
                continue
            except OSError as exc:
                logger.opt(exception=exc).warning(
                    "[TMP] Failed to purge leftover temp entry",
                    name=child.name,
                )
                if first_error is None:
                    first_error = exc

        if first_error is not None:
            raise InitializationError(
                f"Cannot purge temp directory '{self._root}'"
            ) from first_error
        if removed:
            logger.info(
                "[TMP] Purged leftover temp entries",
                root=str(self._root),
                removed=removed,
            )
