"""
Recent tracking calls, for checking that page snippets are firing.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from quiztrack.api.deps import get_monitor
from quiztrack.api.schemas import MonitorResponse
from quiztrack.components.monitor import RecentEventsBuffer, run_snapshot

router = APIRouter()

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate, max-age=0",
    "Pragma": "no-cache",
    "Expires": "0",
}


@router.get("/monitor", response_model=MonitorResponse)
def get_monitor_snapshot(
    response: Response,
    buffer: RecentEventsBuffer = Depends(get_monitor),
) -> MonitorResponse:
    """Newest-first buffer of received tracking calls with per-quiz counts."""
    response.headers.update(NO_CACHE_HEADERS)
    return MonitorResponse.from_snapshot(run_snapshot(buffer=buffer))
