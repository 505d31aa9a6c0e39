"""
KPI Aggregation Engine

Computes the target-progress analytics shown on the admin and RM dashboards
from snapshots of the RM, channel-partner, meeting, sale and target collections.

For a reporting window (see salescrm.services.periods) the engine derives, per RM:
- cp_onboarding: CPs owned by the RM with onboard_date in the window
- active_cp: distinct CPs with at least one in-window sale by the RM
- meetings: meetings by the RM dated in the window
- revenue: sum of sale_amount over the RM's in-window sales (missing = 0)

Each metric is compared with the RM's Target row for the current monthly
period key. The engine then derives percentages, required daily pace,
end-of-window projections, a status label, team totals, catch-up
recommendations and the top performer / needs-attention split.

Data problems never raise here: missing fields count as zero, malformed dates
fall outside every window and zero targets give a 0 percentage.

The engine is a pure function of its inputs. It performs no I/O and does not
mutate the snapshot.
"""

import logging
import math
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from salescrm.models.enums import KpiMetric, KpiStatus, TimeRange, Urgency
from salescrm.models.schemas import (
    ChannelPartner,
    KpiAnalytics,
    KpiSnapshot,
    Meeting,
    MetricPercentages,
    MetricValues,
    PeriodWindow,
    Recommendation,
    RmPerformance,
    Sale,
    Target,
    TeamPerformance,
)
from salescrm.services.periods import in_period, resolve_period


logger = logging.getLogger(__name__)


# =============================================================================
# Thresholds
# =============================================================================

# Status bands on the mean percentage of the four metrics
ACHIEVED_MIN: float = 100.0
AT_RISK_MIN: float = 80.0
BEHIND_MIN: float = 50.0

# Team metrics below this percentage of target get a recommendation
RECOMMENDATION_BELOW_PERCENT: int = 80

DEFAULT_URGENT_DAILY: Dict[KpiMetric, float] = {
    KpiMetric.CP_ONBOARDING: 2.0,
    KpiMetric.ACTIVE_CP: 2.0,
    KpiMetric.MEETINGS: 3.0,
    KpiMetric.REVENUE: 100000.0,
}

ACTION_MESSAGES: Dict[KpiMetric, Dict[Urgency, str]] = {
    KpiMetric.CP_ONBOARDING: {
        Urgency.URGENT: (
            "Urgent: onboard {rate} CPs per day to close a gap of {gap}. "
            "Run a recruitment drive and push every RM to convert warm prospects this week."
        ),
        Urgency.STEADY: (
            "Onboard {rate} CPs per day to close a gap of {gap}. "
            "Focus on high-potential prospects and follow up with warm leads."
        ),
    },
    KpiMetric.ACTIVE_CP: {
        Urgency.URGENT: (
            "Urgent: activate {rate} CPs per day ({gap} more need a first sale). "
            "Assign RMs to co-sell with dormant CPs immediately."
        ),
        Urgency.STEADY: (
            "Activate {rate} CPs per day ({gap} more need a first sale). "
            "Identify CPs close to their first sale and support them."
        ),
    },
    KpiMetric.MEETINGS: {
        Urgency.URGENT: (
            "Urgent: the team needs {rate} meetings per day to close a gap of {gap}. "
            "Block daily prospecting hours for every RM."
        ),
        Urgency.STEADY: (
            "Schedule {rate} meetings per day to close a gap of {gap}. "
            "Keep calendars booked with CP reviews and prospect visits."
        ),
    },
    KpiMetric.REVENUE: {
        Urgency.URGENT: (
            "Urgent: revenue must run at ₹{rate} per day to close a gap of ₹{gap}. "
            "Escalate pending proposals and prioritise high-value deals."
        ),
        Urgency.STEADY: (
            "Revenue needs ₹{rate} per day to close a gap of ₹{gap}. "
            "Follow up on pending proposals."
        ),
    },
}


@dataclass(frozen=True)
class RecommendationThresholds:
    """
    Required daily rates above which a recommendation is marked urgent.

    Attributes:
        cp_onboarding: CPs onboarded per day.
        active_cp: CPs activated per day.
        meetings: Meetings per day.
        revenue: Revenue per day.
    """

    cp_onboarding: float = DEFAULT_URGENT_DAILY[KpiMetric.CP_ONBOARDING]
    active_cp: float = DEFAULT_URGENT_DAILY[KpiMetric.ACTIVE_CP]
    meetings: float = DEFAULT_URGENT_DAILY[KpiMetric.MEETINGS]
    revenue: float = DEFAULT_URGENT_DAILY[KpiMetric.REVENUE]

    def for_metric(self, metric: KpiMetric) -> float:
        return getattr(self, metric.value)

    @classmethod
    def from_settings(cls, settings) -> "RecommendationThresholds":
        return cls(
            cp_onboarding=settings.cp_onboarding_urgent_daily,
            active_cp=settings.active_cp_urgent_daily,
            meetings=settings.meetings_urgent_daily,
            revenue=settings.revenue_urgent_daily,
        )


# =============================================================================
# Arithmetic Helpers
# =============================================================================


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (25.5 -> 26, -2.5 -> -2)."""
    return int(math.floor(value + 0.5))


def percentage_of_target(achieved: float, target: float) -> int:
    """
    Whole-number percentage of target achieved.

    A zero (or negative) target yields 0 rather than a division error, and so
    does any non-finite operand or result.
    """
    if not target or target <= 0:
        return 0
    percentage = achieved / target * 100
    if not math.isfinite(percentage):
        return 0
    return round_half_up(percentage)


def classify_status(avg_percentage: float) -> KpiStatus:
    """Map the mean KPI percentage onto Achieved / At Risk / Behind / Off Track."""
    if avg_percentage >= ACHIEVED_MIN:
        return KpiStatus.ACHIEVED
    if avg_percentage >= AT_RISK_MIN:
        return KpiStatus.AT_RISK
    if avg_percentage >= BEHIND_MIN:
        return KpiStatus.BEHIND
    return KpiStatus.OFF_TRACK


def _pace_divisor(days_remaining: int) -> int:
    return max(1, days_remaining)


def _metric_map(values: Dict[KpiMetric, float]) -> MetricValues:
    return MetricValues(**{metric.value: value for metric, value in values.items()})


def required_daily_pace(
    achieved: MetricValues,
    targets: MetricValues,
    days_remaining: int,
) -> MetricValues:
    """
    Per-day rate needed to hit each target by the end of the window.

    Negative once a target has been exceeded.
    """
    divisor = _pace_divisor(days_remaining)
    return _metric_map({
        metric: (targets.get(metric) - achieved.get(metric)) / divisor
        for metric in KpiMetric
    })


def project_end_values(
    achieved: MetricValues,
    pace: MetricValues,
    days_remaining: int,
) -> MetricValues:
    """Projected end-of-window value: achieved + pace * days_remaining."""
    return _metric_map({
        metric: achieved.get(metric) + pace.get(metric) * days_remaining
        for metric in KpiMetric
    })


def _percentages(achieved: MetricValues, targets: MetricValues) -> MetricPercentages:
    return MetricPercentages(**{
        metric.value: percentage_of_target(achieved.get(metric), targets.get(metric))
        for metric in KpiMetric
    })


def _average(percentages: MetricPercentages) -> float:
    values = [percentages.get(metric) for metric in KpiMetric]
    return sum(values) / len(values)


# =============================================================================
# Achievement
# =============================================================================


def _achievement(
    channel_partners: Iterable[ChannelPartner],
    meetings: Iterable[Meeting],
    sales: Iterable[Sale],
    start: datetime,
) -> MetricValues:
    """Achievement over records already filtered to a single RM."""
    onboarded = sum(1 for cp in channel_partners if in_period(cp.onboard_date, start))
    meeting_count = sum(1 for meeting in meetings if in_period(meeting.meeting_date, start))

    active_cp_ids = set()
    revenue = 0.0
    for sale in sales:
        if not in_period(sale.sale_date, start):
            continue
        revenue += sale.sale_amount or 0.0
        if sale.cp_id:
            active_cp_ids.add(sale.cp_id)

    return MetricValues(
        cp_onboarding=onboarded,
        active_cp=len(active_cp_ids),
        meetings=meeting_count,
        revenue=revenue,
    )


def compute_rm_achievement(
    rm_id: str,
    snapshot: KpiSnapshot,
    start: datetime,
) -> MetricValues:
    """
    Count the four KPI metrics for one RM from `start` onwards.

    Args:
        rm_id: Canonical (string) RM id.
        snapshot: Collections to read.
        start: Inclusive window start.

    Returns:
        MetricValues with cp_onboarding, active_cp, meetings and revenue.
    """
    return _achievement(
        [cp for cp in snapshot.channel_partners if cp.rm_id == rm_id],
        [meeting for meeting in snapshot.meetings if meeting.rm_id == rm_id],
        [sale for sale in snapshot.sales if sale.rm_id == rm_id],
        start,
    )


def find_target(rm_id: str, targets: Iterable[Target], period_key: str) -> Optional[Target]:
    """The RM's Target row for `period_key`, or None. The first row wins on duplicates."""
    for target in targets:
        if target.rm_id == rm_id and target.period == period_key:
            return target
    return None


def target_values(target: Optional[Target]) -> MetricValues:
    """Target fields as MetricValues; all zero when there is no row."""
    if target is None:
        return MetricValues()
    return _metric_map({metric: target.value_for(metric) for metric in KpiMetric})


def build_rm_performance(
    rm_id: str,
    rm_name: Optional[str],
    achieved: MetricValues,
    target: Optional[Target],
    period: PeriodWindow,
) -> RmPerformance:
    """
    Compare an RM's achievement with its Target row.

    Without a target row every percentage is 0, so the RM can never be
    classified as Achieved.
    """
    targets = target_values(target)
    percentages = _percentages(achieved, targets) if target is not None else MetricPercentages()
    pace = required_daily_pace(achieved, targets, period.days_remaining)
    avg_percentage = _average(percentages)

    return RmPerformance(
        rm_id=rm_id,
        rm_name=rm_name,
        has_target=target is not None,
        achieved=achieved,
        targets=targets,
        percentages=percentages,
        required_daily=pace,
        projected=project_end_values(achieved, pace, period.days_remaining),
        avg_percentage=avg_percentage,
        status=classify_status(avg_percentage),
    )


def _group_by_rm(records: Iterable) -> Dict[str, List]:
    grouped: Dict[str, List] = defaultdict(list)
    for record in records:
        if record.rm_id:
            grouped[record.rm_id].append(record)
    return grouped


def compute_rm_performances(
    snapshot: KpiSnapshot,
    period: PeriodWindow,
) -> List[RmPerformance]:
    """RmPerformance for every RM in the snapshot, in snapshot order."""
    cps_by_rm = _group_by_rm(snapshot.channel_partners)
    meetings_by_rm = _group_by_rm(snapshot.meetings)
    sales_by_rm = _group_by_rm(snapshot.sales)

    performances: List[RmPerformance] = []
    for rm in snapshot.rms:
        rm_id = rm.id or ""
        achieved = _achievement(
            cps_by_rm.get(rm_id, []),
            meetings_by_rm.get(rm_id, []),
            sales_by_rm.get(rm_id, []),
            period.start_date,
        )
        target = find_target(rm_id, snapshot.targets, period.period_key)
        performances.append(
            build_rm_performance(rm_id, rm.name, achieved, target, period)
        )
    return performances


# =============================================================================
# Team Aggregation
# =============================================================================


def compute_team_performance(
    performances: Sequence[RmPerformance],
    targets: Iterable[Target],
    period: PeriodWindow,
) -> TeamPerformance:
    """
    Sum achievements across RMs and compare with the summed period targets.

    Team targets are the sum of every Target row for the current period key,
    not an average or a per-RM scaling.
    """
    achieved = _metric_map({
        metric: sum(performance.achieved.get(metric) for performance in performances)
        for metric in KpiMetric
    })
    period_targets = [target for target in targets if target.period == period.period_key]
    team_targets = _metric_map({
        metric: sum(target.value_for(metric) for target in period_targets)
        for metric in KpiMetric
    })

    percentages = _percentages(achieved, team_targets)
    pace = required_daily_pace(achieved, team_targets, period.days_remaining)
    avg_percentage = _average(percentages)

    return TeamPerformance(
        rm_count=len(performances),
        achieved=achieved,
        targets=team_targets,
        percentages=percentages,
        required_daily=pace,
        projected=project_end_values(achieved, pace, period.days_remaining),
        avg_percentage=avg_percentage,
        status=classify_status(avg_percentage),
    )


def _format_rate(metric: KpiMetric, rate: float) -> str:
    if metric is KpiMetric.REVENUE:
        return f"{round_half_up(rate):,}"
    return f"{rate:.1f}"


def _format_gap(metric: KpiMetric, gap: float) -> str:
    if metric is KpiMetric.REVENUE:
        return f"{round_half_up(gap):,}"
    return str(math.ceil(gap))


def generate_recommendations(
    team: TeamPerformance,
    period: PeriodWindow,
    thresholds: Optional[RecommendationThresholds] = None,
) -> List[Recommendation]:
    """
    Catch-up recommendations for team metrics below 80% of target.

    Metrics without a team target are skipped. A required daily rate above
    the metric's threshold selects the urgent message.
    """
    thresholds = thresholds or RecommendationThresholds()
    divisor = _pace_divisor(period.days_remaining)
    recommendations: List[Recommendation] = []

    for metric in KpiMetric:
        target = team.targets.get(metric)
        percentage = team.percentages.get(metric)
        if target <= 0 or percentage >= RECOMMENDATION_BELOW_PERCENT:
            continue

        achieved = team.achieved.get(metric)
        gap = target - achieved
        if not math.isfinite(gap):
            continue
        daily = gap / divisor
        urgency = Urgency.URGENT if daily > thresholds.for_metric(metric) else Urgency.STEADY
        action = ACTION_MESSAGES[metric][urgency].format(
            rate=_format_rate(metric, daily),
            gap=_format_gap(metric, gap),
        )
        recommendations.append(
            Recommendation(
                metric=metric,
                achieved=achieved,
                target=target,
                percentage=percentage,
                gap=gap,
                daily_required=daily,
                urgency=urgency,
                action=action,
            )
        )
    return recommendations


# =============================================================================
# Ranking
# =============================================================================


def rank_performers(
    performances: Sequence[RmPerformance],
) -> Tuple[List[RmPerformance], Optional[RmPerformance], List[RmPerformance]]:
    """
    Rank RMs by avg_percentage, best first.

    Returns:
        (ranked, top_performer, needs_attention). Ties keep snapshot order;
        needs_attention holds every RM averaging below 50%.
    """
    ranked = sorted(performances, key=lambda performance: performance.avg_percentage, reverse=True)
    top_performer = ranked[0] if ranked else None
    needs_attention = [p for p in ranked if p.avg_percentage < BEHIND_MIN]
    return ranked, top_performer, needs_attention


# =============================================================================
# Entry Point
# =============================================================================


def compute_kpi_analytics(
    snapshot: KpiSnapshot,
    time_range: TimeRange,
    now: datetime,
    thresholds: Optional[RecommendationThresholds] = None,
) -> KpiAnalytics:
    """
    Compute admin dashboard analytics for `time_range` evaluated at `now`.

    Args:
        snapshot: RM, CP, meeting, sale and target collections.
        time_range: today, week or month.
        now: Evaluation instant.
        thresholds: Urgency thresholds for recommendations (defaults apply when None).

    Returns:
        KpiAnalytics with the resolved window, team totals, ranked RM
        performance, top performer, needs-attention list and recommendations.
    """
    period = resolve_period(time_range, now)
    performances = compute_rm_performances(snapshot, period)
    team = compute_team_performance(performances, snapshot.targets, period)
    ranked, top_performer, needs_attention = rank_performers(performances)
    recommendations = generate_recommendations(team, period, thresholds)

    logger.debug(
        "KPI analytics for %s (%s): %d RMs, team avg %.1f%%, %d recommendations",
        period.range.value,
        period.period_key,
        team.rm_count,
        team.avg_percentage,
        len(recommendations),
    )

    return KpiAnalytics(
        period=period,
        team=team,
        rm_performance=ranked,
        top_performer=top_performer,
        needs_attention=needs_attention,
        recommendations=recommendations,
    )
