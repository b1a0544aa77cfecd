"""
Per-campaign statistics route.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from quiztrack.api.deps import get_aggregation_engine
from quiztrack.api.params import parse_optional_datetime
from quiztrack.api.schemas import CampaignStatsResponse, ErrorResponse
from quiztrack.components.aggregation import AggregationEngine, CampaignQuery

router = APIRouter()


@router.get(
    "/campaigns/{quiz_id}",
    response_model=CampaignStatsResponse,
    response_model_exclude_unset=True,
    responses={400: {"model": ErrorResponse}},
)
def get_campaign_stats(
    quiz_id: str,
    start_date: str | None = Query(None, alias="startDate", description="ISO date/datetime"),
    end_date: str | None = Query(None, alias="endDate", description="ISO date/datetime"),
    engine: AggregationEngine = Depends(get_aggregation_engine),
) -> CampaignStatsResponse:
    """Get views, completes and conversion per campaign of one quiz."""
    result = engine.get_campaign_stats(
        CampaignQuery(
            quiz_id=quiz_id,
            start_date=parse_optional_datetime(start_date, "startDate"),
            end_date=parse_optional_datetime(end_date, "endDate", end_of_day=True),
        )
    )
    return CampaignStatsResponse.from_result(result)
