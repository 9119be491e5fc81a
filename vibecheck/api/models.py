"""
Model API endpoints for VibeCheck.

This module provides the read views over reported vibes: summaries,
timeseries, breakdowns, clusters and the recent feed.
"""

from typing import List, Literal, Optional
from fastapi import APIRouter, Depends, HTTPException, Path, Query

from vibecheck.api.deps import get_views
from vibecheck.models.schemas import (
    ClusterRow, EnvRow, IssueRow, OverviewRow, RecentReportRow, SummaryIndex,
    VibePoint,
)
from vibecheck.services.views import VibeViews
from vibecheck.utils.helpers import parse_utc

# Create router
router = APIRouter()


def _parse_range(date_from: Optional[str], date_to: Optional[str]):
    """
    Parse ISO-8601 range bounds.

    Raises:
        HTTPException: If a bound cannot be parsed.
    """
    parsed = []
    for name, value in (("date_from", date_from), ("date_to", date_to)):
        try:
            parsed.append(parse_utc(value))
        except ValueError:
            raise HTTPException(
                status_code=422,
                detail=f"{name} must be an ISO-8601 date or datetime",
            )
    return parsed


@router.get("/overview", response_model=List[OverviewRow])
async def models_overview(
    limit: int = Query(8, ge=1, le=24),
    order_by: Literal["today_index", "delta", "model"] = "today_index",
    source: Optional[str] = None,
    views: VibeViews = Depends(get_views),
):
    """
    Per-model summaries.

    Args:
        limit: Maximum number of models to return.
        order_by: Ordering criterion.
        source: Only count reports with this provenance tag.

    Returns:
        List of model summaries.
    """
    return await views.models_overview(limit=limit, order_by=order_by, source=source)


@router.get("/{model}/summary", response_model=SummaryIndex)
async def model_summary(
    model: str = Path(..., description="Model identifier, e.g. GPT-5"),
    source: Optional[str] = None,
    views: VibeViews = Depends(get_views),
):
    """
    Today's worseness index vs the 7-day baseline.
    """
    return await views.summary(model, source=source)


@router.get("/{model}/vibe-series", response_model=List[VibePoint])
async def vibe_series(
    model: str = Path(...),
    days: int = Query(30, ge=7, le=90),
    source: Optional[str] = None,
    views: VibeViews = Depends(get_views),
):
    """
    Daily weighted vibe points and index, oldest first.
    """
    return await views.vibe_series(model, days=days, source=source)


@router.get("/{model}/issues", response_model=List[IssueRow])
async def issue_breakdown(
    model: str = Path(...),
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
    source: Optional[str] = None,
    views: VibeViews = Depends(get_views),
):
    """
    Weighted worse points per issue category in [date_from, date_to).
    """
    start, end = _parse_range(date_from, date_to)
    return await views.issue_breakdown(model, start, end, source=source)


@router.get("/{model}/tags", response_model=List[IssueRow])
async def tag_breakdown(
    model: str = Path(...),
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
    source: Optional[str] = None,
    views: VibeViews = Depends(get_views),
):
    """
    Weighted worse points per issue tag in [date_from, date_to).
    """
    start, end = _parse_range(date_from, date_to)
    return await views.tag_breakdown(model, start, end, source=source)


@router.get("/{model}/environments", response_model=List[EnvRow])
async def env_breakdown(
    model: str = Path(...),
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
    source: Optional[str] = None,
    views: VibeViews = Depends(get_views),
):
    """
    Weighted worse points per environment in [date_from, date_to).
    """
    start, end = _parse_range(date_from, date_to)
    return await views.env_breakdown(model, start, end, source=source)


@router.get("/{model}/clusters", response_model=List[ClusterRow])
async def top_clusters(
    model: str = Path(...),
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
    limit: int = Query(20, ge=1, le=50),
    source: Optional[str] = None,
    views: VibeViews = Depends(get_views),
):
    """
    Top (issue category, environment) clusters in [date_from, date_to).
    """
    start, end = _parse_range(date_from, date_to)
    return await views.top_clusters(model, start, end, limit=limit, source=source)


@router.get("/{model}/recent", response_model=List[RecentReportRow])
async def recent_reports(
    model: str = Path(...),
    limit: int = Query(20, ge=1, le=100),
    views: VibeViews = Depends(get_views),
):
    """
    Most recent reports for a model, newest first.
    """
    return await views.recent(model, limit=limit)
