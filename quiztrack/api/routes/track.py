"""
Tracking ingestion route.

Public endpoint called by the page snippet for quiz views and completions.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from quiztrack.api.deps import get_event_recorder
from quiztrack.api.schemas import ErrorResponse, TrackRequest, TrackResponse
from quiztrack.components.identity import normalize_domain, pick_domain_hint
from quiztrack.components.recorder import EventRecorder, RecordEventInput

router = APIRouter()


def get_client_ip(request: Request) -> str:
    """First X-Forwarded-For entry when behind a proxy, else the peer address."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.client.host if request.client else "unknown"


def get_site_hint(request: Request, explicit_site: str | None) -> str:
    """Explicit site wins; otherwise derive a domain from the request headers."""
    if explicit_site and explicit_site.strip():
        return explicit_site
    hint = pick_domain_hint(
        None,
        request.headers.get("origin"),
        request.headers.get("referer"),
        request.headers.get("host"),
    )
    return normalize_domain(hint)


@router.post(
    "/track",
    response_model=TrackResponse,
    response_model_exclude_unset=True,
    responses={
        400: {"model": ErrorResponse},
        429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
    },
)
def track_event(
    request: Request,
    body: TrackRequest,
    recorder: EventRecorder = Depends(get_event_recorder),
) -> TrackResponse:
    """
    Record a quiz view or completion.

    Validation failures return 400 and rate limiting returns 429; store
    failures still return 200 with ok=false and saved="error".
    """
    result = recorder.record(
        RecordEventInput(
            event_kind=body.event,
            quiz_id=body.quiz_id,
            site=get_site_hint(request, body.site),
            utm_campaign=body.utm_campaign,
            session_id=body.session_id,
            client_ip=get_client_ip(request),
        )
    )

    return TrackResponse.from_result(result)
