"""
Request/response models for the HTTP surface.

Field names on the wire follow the dashboard and tracking snippet
(camelCase where they send or expect it).
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from quiztrack.components.aggregation import (
    CampaignStatsResult,
    StatsResult,
    format_conversion_rate,
)
from quiztrack.components.monitor import MonitorSnapshot
from quiztrack.components.recorder import RecordResult
from quiztrack.core.entities import AggregateRow, CampaignRow


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


def _present(**fields: object) -> dict[str, object]:
    """Optional fields that carry a value; the rest stay unset and are omitted."""
    return {k: v for k, v in fields.items() if v is not None}


# --- Track ---


class TrackRequest(WireModel):
    """Tracking call sent by the page snippet."""

    event: str | None = Field(None, description="view or complete")
    quiz_id: str | None = Field(None, alias="quizId", description="Quiz identifier")
    site: str | None = Field(None, description="Explicit site domain")
    utm_campaign: str | None = Field(None, description="Campaign tag")
    session_id: str | None = Field(None, description="Browser session id")


class TrackResponse(WireModel):
    ok: bool
    saved: str
    event: str
    quiz_id: str = Field(alias="quizId")
    site: str
    error: str | None = None

    @classmethod
    def from_result(cls, result: RecordResult) -> TrackResponse:
        return cls(
            ok=result.ok,
            saved=result.outcome.value,
            event=result.event_kind,
            quiz_id=result.quiz_id,
            site=result.site,
            **_present(error=result.error),
        )


class ErrorResponse(BaseModel):
    error: str
    message: str | None = None


# --- Stats ---


class StatsRow(WireModel):
    bucket: datetime | None = None
    site: str
    quiz_id: str = Field(alias="quizId")
    views: int
    completes: int
    conversion_rate: str = Field(alias="conversionRate")

    @classmethod
    def from_row(cls, row: AggregateRow) -> StatsRow:
        return cls(
            site=row.site,
            quiz_id=row.quiz_id,
            views=row.views,
            completes=row.completes,
            conversion_rate=row.conversion_rate,
            **_present(bucket=row.bucket),
        )


class StatsResponse(WireModel):
    range: str
    site: str | None = None
    days: int | None = None
    start_date: datetime = Field(alias="startDate")
    end_date: datetime = Field(alias="endDate")
    source: str
    bucketed: list[StatsRow]
    totals: list[StatsRow]
    warning: str | None = None
    error: str | None = None

    # debug=true only
    total_events: int | None = Field(None, alias="totalEvents")
    total_views: int | None = Field(None, alias="totalViews")
    total_completes: int | None = Field(None, alias="totalCompletes")
    overall_conversion_rate: str | None = Field(None, alias="overallConversionRate")
    total_quizzes: int | None = Field(None, alias="totalQuizzes")

    @classmethod
    def from_result(
        cls, result: StatsResult, debug: bool = False, precision: int = 1
    ) -> StatsResponse:
        extra: dict[str, object] = {}
        if debug:
            views, completes = result.total_views, result.total_completes
            extra = {
                "total_events": views + completes,
                "total_views": views,
                "total_completes": completes,
                "overall_conversion_rate": format_conversion_rate(views, completes, precision),
                "total_quizzes": len({row.quiz_id for row in result.totals}),
            }
        return cls(
            range=result.range.value,
            site=result.site,
            days=result.days,
            start_date=result.start,
            end_date=result.end,
            source=result.source.value,
            bucketed=[StatsRow.from_row(r) for r in result.bucketed],
            totals=[StatsRow.from_row(r) for r in result.totals],
            **_present(warning=result.warning, error=result.error),
            **extra,
        )


class SitesResponse(BaseModel):
    sites: list[str]


# --- Campaigns ---


class CampaignRowOut(WireModel):
    campaign: str
    views: int
    completes: int
    conversion_rate: str = Field(alias="conversionRate")

    @classmethod
    def from_row(cls, row: CampaignRow) -> CampaignRowOut:
        return cls(
            campaign=row.campaign,
            views=row.views,
            completes=row.completes,
            conversion_rate=row.conversion_rate,
        )


class CampaignTotalsOut(WireModel):
    views: int
    completes: int
    conversion_rate: str = Field(alias="conversionRate")


class CampaignStatsResponse(WireModel):
    quiz_id: str = Field(alias="quizId")
    start_date: datetime = Field(alias="startDate")
    end_date: datetime = Field(alias="endDate")
    source: str
    campaigns: list[CampaignRowOut]
    totals: CampaignTotalsOut
    warning: str | None = None
    error: str | None = None

    @classmethod
    def from_result(cls, result: CampaignStatsResult) -> CampaignStatsResponse:
        return cls(
            quiz_id=result.quiz_id,
            start_date=result.start,
            end_date=result.end,
            source=result.source.value,
            campaigns=[CampaignRowOut.from_row(r) for r in result.campaigns],
            totals=CampaignTotalsOut(
                views=result.totals.views,
                completes=result.totals.completes,
                conversion_rate=result.totals.conversion_rate,
            ),
            **_present(warning=result.warning, error=result.error),
        )


# --- Monitor ---


class MonitorEntryOut(WireModel):
    event: str
    quiz_id: str = Field(alias="quizId")
    site: str
    saved: str
    utm_campaign: str | None = None
    received_at: datetime = Field(alias="receivedAt")


class QuizSummaryOut(BaseModel):
    views: int
    completes: int


class MonitorResponse(WireModel):
    timestamp: datetime
    total_events_tracked: int = Field(alias="totalEventsTracked")
    max_events: int = Field(alias="maxEvents")
    summary: dict[str, QuizSummaryOut]
    recent_events: list[MonitorEntryOut] = Field(alias="recentEvents")
    message: str

    @classmethod
    def from_snapshot(cls, snapshot: MonitorSnapshot) -> MonitorResponse:
        if snapshot.total == 0:
            message = "No events received yet; check that the tracking snippet is installed."
        else:
            message = f"{snapshot.total} events received recently."
        return cls(
            timestamp=snapshot.timestamp,
            total_events_tracked=snapshot.total,
            max_events=snapshot.capacity,
            summary={
                quiz_id: QuizSummaryOut(views=s.views, completes=s.completes)
                for quiz_id, s in snapshot.summary.items()
            },
            recent_events=[
                MonitorEntryOut(
                    event=e.event,
                    quiz_id=e.quiz_id,
                    site=e.site,
                    saved=e.saved,
                    utm_campaign=e.utm_campaign,
                    received_at=e.received_at,
                )
                for e in snapshot.entries
            ],
            message=message,
        )
