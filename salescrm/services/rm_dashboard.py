"""
RM Dashboard Service

Assembles the personal dashboard of one relationship manager: the engine's
KPI performance for the RM plus activity totals, recent records, run-rate
predictions, backlog and coaching tips.

Predictions extrapolate the current daily run rate over the whole window
(achieved / days_elapsed * total_days), which is independent of the
target-driven pace used by the engine's projections.
"""

import logging
import math
from datetime import datetime
from typing import Dict, List, Optional, Sequence, TypeVar

from salescrm.core.store import RecordNotFoundError
from salescrm.models.enums import ForecastConfidence, KpiMetric, MeetingStatus, TimeRange
from salescrm.models.schemas import (
    BacklogItem,
    KpiSnapshot,
    Meeting,
    Prediction,
    RmDashboard,
    Sale,
)
from salescrm.services.kpi_engine import (
    AT_RISK_MIN,
    build_rm_performance,
    compute_rm_achievement,
    find_target,
    round_half_up,
)
from salescrm.services.periods import in_period, parse_timestamp, resolve_period


logger = logging.getLogger(__name__)

DEFAULT_RECENT_LIMIT: int = 5

# An RM is behind on a metric when under 30% of target after the 10th of the month
BACKLOG_BEHIND_SHARE: float = 0.3
BACKLOG_GRACE_DAYS: int = 10

COACHING_TIPS: Dict[KpiMetric, str] = {
    KpiMetric.CP_ONBOARDING: "Tip: Focus on high-potential prospects and follow up with warm leads",
    KpiMetric.ACTIVE_CP: "Tip: Identify CPs close to first sale and provide support",
    KpiMetric.MEETINGS: "Tip: Block calendar for prospecting hours daily",
    KpiMetric.REVENUE: "Tip: Focus on high-value deals and follow up on pending proposals",
}

RecordT = TypeVar("RecordT", Meeting, Sale)


def run_rate_prediction(
    current: float,
    target: float,
    days_elapsed: int,
    total_days: int,
) -> Optional[Prediction]:
    """
    Extrapolate the current run rate to the end of the window.

    Returns None when there is no target to compare against or the
    projection is not finite.
    """
    if not target:
        return None

    daily_rate = current / max(1, days_elapsed)
    projected = daily_rate * total_days
    projected_percentage = projected / target * 100
    if not math.isfinite(projected_percentage):
        return None

    if projected_percentage >= 100:
        confidence = ForecastConfidence.ON_TRACK
    elif projected_percentage >= AT_RISK_MIN:
        confidence = ForecastConfidence.AT_RISK
    else:
        confidence = ForecastConfidence.BEHIND_SCHEDULE

    return Prediction(
        projected_value=round_half_up(projected),
        projected_percentage=min(round_half_up(projected_percentage), 100),
        gap=max(0, round_half_up(target - projected)),
        daily_rate=round(daily_rate, 1),
        confidence=confidence,
    )


def backlog_item(achieved: float, target: float, now: datetime) -> Optional[BacklogItem]:
    """Outstanding share of a target; None when there is no target or the share is not finite."""
    if not target:
        return None
    percentage = achieved / target * 100
    if not math.isfinite(percentage):
        return None
    return BacklogItem(
        percentage=round_half_up(percentage),
        remaining=target - achieved,
        is_behind=achieved < target * BACKLOG_BEHIND_SHARE and now.day > BACKLOG_GRACE_DAYS,
    )


def coaching_tips(
    metric: KpiMetric,
    achieved: float,
    target: float,
    days_remaining: int,
) -> List[str]:
    """Three coaching lines: what is left, the per-day pace and a tip."""
    if not target:
        return []

    gap = target - achieved
    if not math.isfinite(gap):
        return []
    daily_needed = gap / max(1, days_remaining)
    remaining = max(0, math.ceil(gap))

    if metric is KpiMetric.CP_ONBOARDING:
        lines = [
            f"Need to onboard {remaining} more CPs in {days_remaining} days",
            f"Daily target: {daily_needed:.1f} CPs per day",
        ]
    elif metric is KpiMetric.ACTIVE_CP:
        lines = [
            f"Need {remaining} more active CPs (CPs with sales)",
            f"Convert {daily_needed:.1f} CPs to active status daily",
        ]
    elif metric is KpiMetric.MEETINGS:
        lines = [
            f"Need {remaining} more meetings in {days_remaining} days",
            f"Schedule {daily_needed:.1f} meetings per day",
        ]
    else:
        lines = [
            f"Need ₹{round_half_up(gap):,} more revenue",
            f"Daily revenue target: ₹{round_half_up(daily_needed):,}",
        ]
    lines.append(COACHING_TIPS[metric])
    return lines


def most_recent(records: Sequence[RecordT], date_field: str, limit: int) -> List[RecordT]:
    """Newest `limit` records by `date_field`; unparseable dates sort last."""
    def sort_key(record: RecordT):
        parsed = parse_timestamp(getattr(record, date_field))
        return (parsed is not None, parsed or datetime.min)

    return sorted(records, key=sort_key, reverse=True)[:limit]


def build_rm_dashboard(
    rm_id: str,
    snapshot: KpiSnapshot,
    time_range: TimeRange,
    now: datetime,
    recent_limit: int = DEFAULT_RECENT_LIMIT,
) -> RmDashboard:
    """
    Build the dashboard for one RM.

    Args:
        rm_id: RM whose dashboard to build.
        snapshot: Collections to read.
        time_range: today, week or month.
        now: Evaluation instant.
        recent_limit: How many recent meetings and sales to include.

    Raises:
        RecordNotFoundError: If the RM is not in the snapshot.
    """
    rm = next((candidate for candidate in snapshot.rms if candidate.id == rm_id), None)
    if rm is None:
        raise RecordNotFoundError("rms", rm_id)

    period = resolve_period(time_range, now)
    start = period.start_date

    achieved = compute_rm_achievement(rm_id, snapshot, start)
    target = find_target(rm_id, snapshot.targets, period.period_key)
    performance = build_rm_performance(rm_id, rm.name, achieved, target, period)

    rm_cps = [cp for cp in snapshot.channel_partners if cp.rm_id == rm_id]
    rm_meetings = [
        meeting for meeting in snapshot.meetings
        if meeting.rm_id == rm_id and in_period(meeting.meeting_date, start)
    ]
    rm_sales = [
        sale for sale in snapshot.sales
        if sale.rm_id == rm_id and in_period(sale.sale_date, start)
    ]

    predictions: Dict[KpiMetric, Prediction] = {}
    backlog: Dict[KpiMetric, BacklogItem] = {}
    tips: Dict[KpiMetric, List[str]] = {}
    if target is not None:
        for metric in KpiMetric:
            current = achieved.get(metric)
            goal = target.value_for(metric)
            prediction = run_rate_prediction(current, goal, period.days_elapsed, period.total_days)
            if prediction is not None:
                predictions[metric] = prediction
            item = backlog_item(current, goal, period.now)
            if item is not None:
                backlog[metric] = item
            lines = coaching_tips(metric, current, goal, period.days_remaining)
            if lines:
                tips[metric] = lines

    logger.debug("RM dashboard for %s (%s): status %s", rm_id, period.range.value, performance.status.value)

    return RmDashboard(
        period=period,
        performance=performance,
        total_cps=len(rm_cps),
        sales_count=len(rm_sales),
        total_sales_value=sum(sale.sale_amount or 0.0 for sale in rm_sales),
        total_commission=sum(sale.commission_amount or 0.0 for sale in rm_sales),
        pending_follow_ups=sum(
            1 for meeting in rm_meetings if meeting.status == MeetingStatus.FOLLOW_UP_PENDING
        ),
        recent_meetings=most_recent(rm_meetings, "meeting_date", recent_limit),
        recent_sales=most_recent(rm_sales, "sale_date", recent_limit),
        predictions=predictions,
        backlog=backlog,
        tips=tips,
    )
