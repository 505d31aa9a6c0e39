"""
Pydantic models for the sales CRM backend.

Three groups of models live here:
- Collection records (RelationshipManager, ChannelPartner, Meeting, Sale, Target)
  as stored by the collection store. Records tolerate extra fields because the
  front-end forms persist arbitrary detail fields alongside the core ones.
- KPI engine inputs and outputs (KpiSnapshot, PeriodWindow, RmPerformance,
  TeamPerformance, Recommendation, KpiAnalytics, RmDashboard).
- Request payloads for the record workflows (onboarding, meeting log, sale).

Identifiers arrive from the store as numbers or strings. They are canonicalised
to strings at this boundary so that every foreign-key comparison downstream is
plain string equality.
"""

import math
from datetime import date, datetime
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

from salescrm.models.enums import (
    ForecastConfidence,
    KpiMetric,
    KpiStatus,
    MeetingOutcome,
    MeetingType,
    RmStatus,
    TimeRange,
    Urgency,
)


# =============================================================================
# Boundary Coercion
# =============================================================================


def _coerce_id(value: Any) -> Any:
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _coerce_date_text(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if value is None or isinstance(value, str):
        return value
    return str(value)


def _lenient_number(value: Any) -> Optional[float]:
    # Form fields are posted as strings; anything unparseable or non-finite counts as missing
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _lenient_target(value: Any) -> float:
    number = _lenient_number(value)
    return number if number is not None else 0.0


RecordId = Annotated[str, BeforeValidator(_coerce_id)]
DateText = Annotated[Optional[str], BeforeValidator(_coerce_date_text)]
Amount = Annotated[Optional[float], BeforeValidator(_lenient_number)]
TargetValue = Annotated[float, BeforeValidator(_lenient_target)]


# =============================================================================
# Collection Records
# =============================================================================


class CrmRecord(BaseModel):
    """Base for stored records: keeps unknown fields so round-trips are lossless."""

    model_config = ConfigDict(extra="allow")

    id: Optional[RecordId] = None


class RelationshipManager(CrmRecord):
    """A relationship manager (sales agent)."""

    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    status: Optional[str] = Field(default=RmStatus.ACTIVE.value, description="active | inactive")


class ChannelPartner(CrmRecord):
    """A channel partner onboarded by an RM."""

    rm_id: Optional[RecordId] = None
    cp_name: Optional[str] = None
    onboard_date: DateText = Field(default=None, description="Date the CP was onboarded")
    status: Optional[str] = None


class Meeting(CrmRecord):
    """A meeting logged by an RM, usually with a CP."""

    rm_id: Optional[RecordId] = None
    cp_id: Optional[RecordId] = None
    meeting_date: DateText = None
    outcome: Optional[str] = Field(
        default=None,
        description="interested | not_interested | follow_up | deal_win",
    )
    status: Optional[str] = Field(default=None, description="completed | follow_up_pending")


class Sale(CrmRecord):
    """A closed sale attributed to an RM and (optionally) a CP."""

    rm_id: Optional[RecordId] = None
    cp_id: Optional[RecordId] = None
    sale_amount: Amount = Field(default=None, description="Sale value; missing counts as 0")
    sale_date: DateText = None
    commission_amount: Amount = None


class Target(CrmRecord):
    """A per-RM, per-period quota across the four KPI metrics."""

    rm_id: Optional[RecordId] = None
    period: Optional[str] = Field(default=None, description="Period key, e.g. march-2026")
    cp_onboarding_target: TargetValue = 0.0
    active_cp_target: TargetValue = 0.0
    meetings_target: TargetValue = 0.0
    revenue_target: TargetValue = 0.0

    def value_for(self, metric: KpiMetric) -> float:
        return getattr(self, metric.target_field)


class KpiSnapshot(BaseModel):
    """The five collections the KPI engine reads for one evaluation."""

    rms: List[RelationshipManager] = Field(default_factory=list)
    channel_partners: List[ChannelPartner] = Field(default_factory=list)
    meetings: List[Meeting] = Field(default_factory=list)
    sales: List[Sale] = Field(default_factory=list)
    targets: List[Target] = Field(default_factory=list)


# =============================================================================
# KPI Engine Results
# =============================================================================


class PeriodWindow(BaseModel):
    """
    Resolved reporting window for one evaluation instant.

    start_date is inclusive. days_remaining is never negative; callers divide
    by max(1, days_remaining).
    """

    range: TimeRange
    now: datetime
    start_date: datetime
    total_days: int = Field(..., ge=1)
    days_elapsed: int = Field(..., ge=0)
    days_remaining: int = Field(..., ge=0)
    period_key: str = Field(..., description="Target period key, e.g. march-2026")


class MetricValues(BaseModel):
    """One numeric value per KPI metric."""

    cp_onboarding: float = 0.0
    active_cp: float = 0.0
    meetings: float = 0.0
    revenue: float = 0.0

    def get(self, metric: KpiMetric) -> float:
        return getattr(self, metric.value)


class MetricPercentages(BaseModel):
    """Whole-number percentage of target per KPI metric."""

    cp_onboarding: int = 0
    active_cp: int = 0
    meetings: int = 0
    revenue: int = 0

    def get(self, metric: KpiMetric) -> int:
        return getattr(self, metric.value)


class RmPerformance(BaseModel):
    """Achievement of one RM against the current period's target."""

    rm_id: str
    rm_name: Optional[str] = None
    has_target: bool
    achieved: MetricValues
    targets: MetricValues
    percentages: MetricPercentages
    required_daily: MetricValues
    projected: MetricValues
    avg_percentage: float
    status: KpiStatus


class TeamPerformance(BaseModel):
    """Team-wide sums across all RMs."""

    rm_count: int
    achieved: MetricValues
    targets: MetricValues
    percentages: MetricPercentages
    required_daily: MetricValues
    projected: MetricValues
    avg_percentage: float
    status: KpiStatus


class Recommendation(BaseModel):
    """Catch-up guidance for a team metric running below 80% of target."""

    metric: KpiMetric
    achieved: float
    target: float
    percentage: int
    gap: float = Field(..., description="target - achieved")
    daily_required: float
    urgency: Urgency
    action: str


class KpiAnalytics(BaseModel):
    """Admin dashboard analytics for one reporting window."""

    period: PeriodWindow
    team: TeamPerformance
    rm_performance: List[RmPerformance] = Field(
        default_factory=list,
        description="All RMs ranked by avg_percentage, best first",
    )
    top_performer: Optional[RmPerformance] = None
    needs_attention: List[RmPerformance] = Field(default_factory=list)
    recommendations: List[Recommendation] = Field(default_factory=list)


class Prediction(BaseModel):
    """Run-rate projection of a metric to the end of the window."""

    projected_value: int
    projected_percentage: int = Field(..., le=100)
    gap: int = Field(..., ge=0)
    daily_rate: float
    confidence: ForecastConfidence


class BacklogItem(BaseModel):
    """How much of a target is still outstanding."""

    percentage: int
    remaining: float
    is_behind: bool


class RmDashboard(BaseModel):
    """Everything the RM dashboard shows for one RM and window."""

    period: PeriodWindow
    performance: RmPerformance
    total_cps: int
    sales_count: int
    total_sales_value: float
    total_commission: float
    pending_follow_ups: int
    recent_meetings: List[Meeting] = Field(default_factory=list)
    recent_sales: List[Sale] = Field(default_factory=list)
    predictions: Dict[KpiMetric, Prediction] = Field(default_factory=dict)
    backlog: Dict[KpiMetric, BacklogItem] = Field(default_factory=dict)
    tips: Dict[KpiMetric, List[str]] = Field(default_factory=dict)


# =============================================================================
# Record Workflow Requests
# =============================================================================


class ChannelPartnerOnboardRequest(BaseModel):
    """Onboarding form for a new channel partner."""

    model_config = ConfigDict(
        extra="allow",
        json_schema_extra={
            "example": {
                "cp_name": "Sharma Realty",
                "phone": "9876543210",
                "email": "contact@sharmarealty.in",
                "cp_type": "individual",
                "expected_monthly_business": "250000",
                "pan_number": "ABCDE1234F",
            }
        },
    )

    cp_name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    email: Optional[str] = None
    address: Optional[str] = None
    cp_type: str = "individual"
    operating_markets: Optional[str] = None
    industry: Optional[str] = None
    expected_monthly_business: Optional[Any] = None
    pan_number: Optional[str] = None
    aadhar_number: Optional[str] = None
    pan_verified: bool = False
    aadhar_verified: bool = False
    pan_filename: Optional[str] = None
    aadhar_filename: Optional[str] = None


class DealDetails(BaseModel):
    """Sale details captured when a meeting ends in a deal win."""

    model_config = ConfigDict(extra="allow")

    client_name: Optional[str] = None
    client_phone: Optional[str] = None
    client_email: Optional[str] = None
    sale_amount: Amount = None
    product_service: Optional[str] = None
    invoice_number: Optional[str] = None


class MeetingLogRequest(BaseModel):
    """Meeting logger form."""

    model_config = ConfigDict(
        extra="allow",
        json_schema_extra={
            "example": {
                "cp_id": "3",
                "meeting_type": "existing_cp",
                "meeting_date": "2026-03-10T11:30",
                "outcome": "deal_win",
                "deal": {"client_name": "R. Iyer", "sale_amount": "450000"},
            }
        },
    )

    cp_id: Optional[RecordId] = None
    meeting_type: MeetingType = MeetingType.PROSPECTING
    meeting_date: DateText = None
    outcome: MeetingOutcome
    notes: Optional[str] = None
    follow_up_date: Optional[str] = None
    follow_up_time: Optional[str] = None
    follow_up_notes: Optional[str] = None
    deal: Optional[DealDetails] = None


class MeetingLogResult(BaseModel):
    """Records created by a meeting log."""

    meeting: Meeting
    sale: Optional[Sale] = None


class SaleRecordRequest(BaseModel):
    """Sale recording form. Choices of "others" fall back to the manual_* field."""

    model_config = ConfigDict(extra="allow")

    cp_id: Optional[RecordId] = None
    sale_date: DateText = None
    project_name: Optional[str] = None
    manual_project: Optional[str] = None
    unit_type: Optional[str] = "plot"
    manual_unit_type: Optional[str] = None
    payment_plan: Optional[str] = None
    manual_payment_plan: Optional[str] = None
    number_of_plots: Optional[Any] = None
    sale_amount: Optional[Any] = None
    booking_amount: Optional[Any] = None
    commission_amount: Optional[Any] = None
    payment_date: Optional[str] = None
