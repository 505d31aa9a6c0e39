"""
Tests for the RM dashboard service.

Evaluated on the conftest snapshot at Sunday 2026-03-15 00:00 over the month
window (14 days elapsed of 31, 17 remaining).
"""

from datetime import datetime

import pytest

from salescrm.core.store import RecordNotFoundError
from salescrm.models.enums import ForecastConfidence, KpiMetric, KpiStatus, TimeRange
from salescrm.models.schemas import KpiSnapshot, Meeting
from salescrm.services.rm_dashboard import (
    backlog_item,
    build_rm_dashboard,
    coaching_tips,
    most_recent,
    run_rate_prediction,
)


class TestRunRatePrediction:

    def test_projects_current_rate_over_window(self) -> None:
        prediction = run_rate_prediction(75000, 200000, days_elapsed=14, total_days=31)

        assert prediction.projected_value == 166071
        assert prediction.projected_percentage == 83
        assert prediction.gap == 33929
        assert prediction.daily_rate == pytest.approx(5357.1)
        assert prediction.confidence is ForecastConfidence.AT_RISK

    def test_percentage_is_capped_and_gap_floored(self) -> None:
        prediction = run_rate_prediction(2, 4, days_elapsed=14, total_days=31)

        assert prediction.projected_percentage == 100
        assert prediction.gap == 0
        assert prediction.confidence is ForecastConfidence.ON_TRACK

    def test_behind_schedule(self) -> None:
        prediction = run_rate_prediction(1, 8, days_elapsed=14, total_days=31)

        assert prediction.confidence is ForecastConfidence.BEHIND_SCHEDULE

    def test_first_day_does_not_divide_by_zero(self) -> None:
        prediction = run_rate_prediction(3, 10, days_elapsed=0, total_days=7)

        assert prediction.daily_rate == 3

    def test_no_target_no_prediction(self) -> None:
        assert run_rate_prediction(5, 0, days_elapsed=3, total_days=7) is None

    def test_overflowing_projection_has_no_prediction(self) -> None:
        assert run_rate_prediction(1e308, 1e-10, days_elapsed=1, total_days=31) is None


class TestBacklogAndTips:

    def test_behind_after_grace_period(self) -> None:
        item = backlog_item(2, 8, datetime(2026, 3, 15))

        assert item.percentage == 25
        assert item.remaining == 6
        assert item.is_behind is True

    def test_not_behind_early_in_month(self) -> None:
        assert backlog_item(0, 8, datetime(2026, 3, 10)).is_behind is False

    def test_no_target_no_backlog(self) -> None:
        assert backlog_item(3, 0, datetime(2026, 3, 15)) is None

    def test_overflowing_share_has_no_backlog(self) -> None:
        assert backlog_item(1e308, 1e-10, datetime(2026, 3, 15)) is None

    def test_non_finite_gap_has_no_tips(self) -> None:
        assert coaching_tips(KpiMetric.REVENUE, float("inf"), 200000, days_remaining=17) == []

    def test_revenue_tips(self) -> None:
        lines = coaching_tips(KpiMetric.REVENUE, 75000, 200000, days_remaining=17)

        assert lines[0] == "Need ₹125,000 more revenue"
        assert lines[1] == "Daily revenue target: ₹7,353"
        assert lines[2].startswith("Tip:")

    def test_meeting_tips(self) -> None:
        lines = coaching_tips(KpiMetric.MEETINGS, 2, 8, days_remaining=17)

        assert lines[0] == "Need 6 more meetings in 17 days"
        assert lines[1] == "Schedule 0.4 meetings per day"

    def test_met_target_reports_zero_remaining(self) -> None:
        lines = coaching_tips(KpiMetric.CP_ONBOARDING, 5, 4, days_remaining=3)

        assert lines[0] == "Need to onboard 0 more CPs in 3 days"


class TestMostRecent:

    def test_newest_first_with_invalid_dates_last(self) -> None:
        meetings = [
            Meeting(id="a", meeting_date="2026-03-01"),
            Meeting(id="b", meeting_date="garbage"),
            Meeting(id="c", meeting_date="2026-03-12T09:00"),
        ]

        ordered = most_recent(meetings, "meeting_date", limit=5)

        assert [m.id for m in ordered] == ["c", "a", "b"]

    def test_limit(self) -> None:
        meetings = [Meeting(id=str(day), meeting_date=f"2026-03-{day:02d}") for day in range(1, 10)]

        assert [m.id for m in most_recent(meetings, "meeting_date", limit=2)] == ["9", "8"]


class TestBuildRmDashboard:

    def test_totals(self, snapshot: KpiSnapshot, now: datetime) -> None:
        dashboard = build_rm_dashboard("1", snapshot, TimeRange.MONTH, now)

        assert dashboard.total_cps == 2
        assert dashboard.sales_count == 3
        assert dashboard.total_sales_value == 75000
        assert dashboard.total_commission == 3750
        assert dashboard.pending_follow_ups == 0
        assert dashboard.performance.status is KpiStatus.OFF_TRACK

    def test_recent_records_are_in_window_and_newest_first(
        self, snapshot: KpiSnapshot, now: datetime
    ) -> None:
        dashboard = build_rm_dashboard("1", snapshot, TimeRange.MONTH, now)

        assert [m.id for m in dashboard.recent_meetings] == ["20", "21"]
        assert [s.id for s in dashboard.recent_sales] == ["30", "32", "31"]

    def test_recent_limit(self, snapshot: KpiSnapshot, now: datetime) -> None:
        dashboard = build_rm_dashboard("1", snapshot, TimeRange.MONTH, now, recent_limit=1)

        assert [s.id for s in dashboard.recent_sales] == ["30"]

    def test_pending_follow_ups(self, snapshot: KpiSnapshot, now: datetime) -> None:
        dashboard = build_rm_dashboard("2", snapshot, TimeRange.WEEK, now)

        assert dashboard.pending_follow_ups == 1

    def test_predictions_backlog_and_tips(self, snapshot: KpiSnapshot, now: datetime) -> None:
        dashboard = build_rm_dashboard("1", snapshot, TimeRange.MONTH, now)

        assert set(dashboard.predictions) == set(KpiMetric)
        assert dashboard.predictions[KpiMetric.REVENUE].projected_value == 166071
        assert dashboard.predictions[KpiMetric.CP_ONBOARDING].confidence is ForecastConfidence.ON_TRACK
        assert dashboard.backlog[KpiMetric.MEETINGS].is_behind is True
        assert dashboard.backlog[KpiMetric.REVENUE].is_behind is False
        assert dashboard.tips[KpiMetric.REVENUE][0] == "Need ₹125,000 more revenue"

    def test_rm_without_target_has_no_forecasts(self, snapshot: KpiSnapshot, now: datetime) -> None:
        dashboard = build_rm_dashboard("3", snapshot, TimeRange.MONTH, now)

        assert dashboard.performance.has_target is False
        assert dashboard.predictions == {}
        assert dashboard.backlog == {}
        assert dashboard.tips == {}

    def test_unknown_rm(self, snapshot: KpiSnapshot, now: datetime) -> None:
        with pytest.raises(RecordNotFoundError):
            build_rm_dashboard("99", snapshot, TimeRange.MONTH, now)
