"""
Dashboard statistics routes.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from quiztrack.api.deps import get_aggregation_engine
from quiztrack.api.params import parse_optional_datetime
from quiztrack.api.schemas import ErrorResponse, SitesResponse, StatsResponse
from quiztrack.components.aggregation import AggregationEngine, StatsQuery

router = APIRouter()


@router.get(
    "/stats",
    response_model=StatsResponse | SitesResponse,
    response_model_exclude_unset=True,
    responses={400: {"model": ErrorResponse}},
)
def get_stats(
    range: str | None = Query(None, description="Bucket size: hour, day, week"),
    site: str | None = Query(None, description="Filter by site domain"),
    days: int | None = Query(None, description="Trailing window in days (default 30)"),
    start_date: str | None = Query(None, alias="startDate", description="ISO date/datetime"),
    end_date: str | None = Query(None, alias="endDate", description="ISO date/datetime"),
    distinct: str | None = Query(None, description="'site' lists onboarded domains"),
    debug: bool = Query(False, description="Add overall summary fields"),
    engine: AggregationEngine = Depends(get_aggregation_engine),
) -> StatsResponse | SitesResponse:
    """
    Get bucketed and total quiz statistics.

    Store trouble never fails the request: the body carries source "none"
    and an error message instead.
    """
    if distinct == "site":
        return SitesResponse(sites=engine.list_sites())

    result = engine.get_stats(
        StatsQuery(
            range=range,
            site=site,
            days=days,
            start_date=parse_optional_datetime(start_date, "startDate"),
            end_date=parse_optional_datetime(end_date, "endDate", end_of_day=True),
        )
    )

    return StatsResponse.from_result(result, debug=debug, precision=engine.config.rate_precision)
