from ._directory import TempDirectoryManager
from ._errors import (
    AllocationIOError,
    InitializationError,
    ReclamationIOError,
    TempFileError,
    TrackerClosedError,
)
from ._item import DeferredFileStream, TempFileHandle, TempFileItemFactory
from .main import TempFileConfig, TempFileStats, TempFileTracker, TrackedEntry

__all__ = [
    "AllocationIOError",
    "DeferredFileStream",
    "InitializationError",
    "ReclamationIOError",
    "TempDirectoryManager",
    "TempFileConfig",
    "TempFileError",
    "TempFileHandle",
    "TempFileItemFactory",
    "TempFileStats",
    "TempFileTracker",
    "TrackedEntry",
    "TrackerClosedError",
]
