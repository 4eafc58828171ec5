from fastapi import APIRouter, Depends, Request

from scratchfiles.services.temp_file import TempFileTracker, TrackerClosedError

router = APIRouter(prefix="/temp-files")


def get_tracker(request: Request) -> TempFileTracker:
    tracker = getattr(request.app.state, "temp_files", None)
    if tracker is None or tracker.closed:
        raise TrackerClosedError("TempFileTracker is not running")
    return tracker


@router.get("/")
async def get_stats(tracker: TempFileTracker = Depends(get_tracker)):
    """Number of temp files still pending deletion, plus lifetime counters."""
    stats = tracker.stats()
    return {
        "live_count": stats.live_count,
        "allocated_total": stats.allocated_total,
        "directory": stats.directory,
        "threshold": stats.threshold,
    }
