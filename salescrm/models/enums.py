"""
Enumeration definitions for the sales CRM backend.

All enums inherit from both `str` and `Enum` so they serialize as plain strings
in Pydantic models and JSON responses, and compare equal to the raw strings
stored in the collection documents.
"""

from enum import Enum


class TimeRange(str, Enum):
    """
    Reporting window selector for dashboard analytics.

    - today: from midnight of the evaluation day
    - week: from Monday 00:00 of the current ISO week
    - month: from the first day of the current calendar month
    """
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"


class RmStatus(str, Enum):
    """Employment status of a relationship manager."""
    ACTIVE = "active"
    INACTIVE = "inactive"


class MeetingOutcome(str, Enum):
    """
    Result recorded by the RM after a meeting.

    A deal_win outcome also creates a Sale linked to the meeting.
    """
    INTERESTED = "interested"
    NOT_INTERESTED = "not_interested"
    FOLLOW_UP = "follow_up"
    DEAL_WIN = "deal_win"


class MeetingStatus(str, Enum):
    """Lifecycle status of a meeting record."""
    COMPLETED = "completed"
    FOLLOW_UP_PENDING = "follow_up_pending"


class MeetingType(str, Enum):
    """Who the meeting was held with."""
    PROSPECTING = "prospecting"
    EXISTING_CP = "existing_cp"
    CLIENT = "client"


class KpiMetric(str, Enum):
    """
    The four KPI metrics tracked against a Target row.

    Each value is also the prefix of the matching Target field, e.g.
    revenue -> revenue_target.
    """
    CP_ONBOARDING = "cp_onboarding"
    ACTIVE_CP = "active_cp"
    MEETINGS = "meetings"
    REVENUE = "revenue"

    @property
    def target_field(self) -> str:
        return f"{self.value}_target"


class KpiStatus(str, Enum):
    """
    Achievement status derived from the mean of the four KPI percentages.

    - Achieved: average >= 100
    - At Risk: 80 <= average < 100
    - Behind: 50 <= average < 80
    - Off Track: average < 50
    """
    ACHIEVED = "Achieved"
    AT_RISK = "At Risk"
    BEHIND = "Behind"
    OFF_TRACK = "Off Track"


class ForecastConfidence(str, Enum):
    """Confidence label attached to a run-rate projection on the RM dashboard."""
    ON_TRACK = "On Track"
    AT_RISK = "At Risk"
    BEHIND_SCHEDULE = "Behind Schedule"


class Urgency(str, Enum):
    """Urgency of a team recommendation, chosen by the per-metric daily threshold."""
    URGENT = "urgent"
    STEADY = "steady"


class Collection(str, Enum):
    """Collections served by the store, named as their REST endpoints."""
    RMS = "rms"
    CHANNEL_PARTNERS = "channel_partners"
    MEETINGS = "meetings"
    SALES = "sales"
    TARGETS = "targets"
