from __future__ import annotations


class TempFileError(Exception):
    """Base class for temp-file lifecycle failures."""


class InitializationError(TempFileError):
    """The working directory or the item factory could not be prepared."""


class AllocationIOError(TempFileError, OSError):
    """A freshly created handle could not open its output stream."""


class ReclamationIOError(TempFileError, OSError):
    """A tracked file could not be removed from disk."""


class TrackerClosedError(TempFileError, RuntimeError):
    """The tracker is not initialized or has already been shut down."""
