"""
FastAPI router for KPI analytics.

Key Endpoints:
- GET /analytics/kpis - Team-wide KPI analytics for the admin dashboard
- GET /analytics/rms/{rm_id}/dashboard - Personal dashboard for one RM

Both endpoints load a fresh snapshot of the five collections and evaluate the
KPI engine at `now`. `now` defaults to the wall clock; passing it explicitly
(ISO timestamp) makes the response reproducible.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Query

from salescrm.api.errors import http_error_for
from salescrm.core.dependencies import NowDep, SettingsDep, StoreDep
from salescrm.core.store import StoreError
from salescrm.models.enums import TimeRange
from salescrm.models.schemas import KpiAnalytics, RmDashboard
from salescrm.services.kpi_engine import RecommendationThresholds, compute_kpi_analytics
from salescrm.services.rm_dashboard import build_rm_dashboard


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/analytics")


@router.get("/kpis", response_model=KpiAnalytics)
async def team_kpis(
    store: StoreDep,
    settings: SettingsDep,
    clock: NowDep,
    range: TimeRange = Query(TimeRange.MONTH, description="today, week or month"),
    now: Optional[datetime] = Query(None, description="Evaluation instant (ISO 8601)"),
) -> KpiAnalytics:
    """
    Team KPI analytics: per-RM achievement against the current month's
    targets, team totals, top performer, needs-attention list and
    recommendations.

    Raises:
        HTTPException 503: If the collection store cannot be read.
    """
    try:
        snapshot = await store.load_snapshot()
    except StoreError as e:
        raise http_error_for(e) from e

    return compute_kpi_analytics(
        snapshot,
        range,
        now or clock,
        thresholds=RecommendationThresholds.from_settings(settings),
    )


@router.get("/rms/{rm_id}/dashboard", response_model=RmDashboard)
async def rm_dashboard(
    rm_id: str,
    store: StoreDep,
    settings: SettingsDep,
    clock: NowDep,
    range: TimeRange = Query(TimeRange.MONTH, description="today, week or month"),
    now: Optional[datetime] = Query(None, description="Evaluation instant (ISO 8601)"),
) -> RmDashboard:
    """
    Dashboard for one RM.

    Raises:
        HTTPException 404: If the RM does not exist.
        HTTPException 503: If the collection store cannot be read.
    """
    try:
        snapshot = await store.load_snapshot()
        return build_rm_dashboard(
            rm_id,
            snapshot,
            range,
            now or clock,
            recent_limit=settings.recent_items_limit,
        )
    except StoreError as e:
        raise http_error_for(e) from e
