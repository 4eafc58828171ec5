from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from filelock import FileLock, Timeout
from loguru import logger

_LOG_PREFIX = "TMP"


def try_acquire_file_lock(path: Path) -> Optional[FileLock]:
    # The lock is released from whichever thread runs shutdown,
    # so do not use thread-local context.
    lock = FileLock(str(path), thread_local=False)
    try:
        lock.acquire(timeout=0)
    except Timeout:
        return None
    tighten_file_permissions(path)
    return lock


def release_file_lock(handle: Optional[FileLock]) -> None:
    if handle is None:
        return
    try:
        handle.release()
    except Exception:
        logger.exception(f"[{_LOG_PREFIX}] Failed to release file lock")


def tighten_directory_permissions(path: Path) -> None:
    try:
        os.chmod(path, 0o700)
    except Exception:
        logger.exception(f"[{_LOG_PREFIX}] Failed to set directory permissions")


def tighten_file_permissions(path: Path) -> None:
    if not path.exists():
        return
    try:
        os.chmod(path, 0o600)
    except Exception:
        logger.exception(
            f"[{_LOG_PREFIX}] Failed to set file permissions",
            name=path.name,
        )


def open_new_file(path: Path):
    """Create `path` exclusively and return a buffered binary writer."""
    flags = os.O_WRONLY | os.O_CREAT | os.O_EXCL
    if hasattr(os, "O_NOFOLLOW"):
        flags |= os.O_NOFOLLOW
    if hasattr(os, "O_BINARY"):
        flags |= os.O_BINARY
    fd = os.open(path, flags, 0o600)
    try:
        return os.fdopen(fd, "wb")
    except BaseException:
        os.close(fd)
        raise


def remove_file(path: Path) -> bool:
    """Unlink a regular file. Returns False when it was already gone."""
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    return True
