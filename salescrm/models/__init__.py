"""
Package initialization file for sales CRM models.

Re-exports all Pydantic schemas and enumerations so other modules can import
them from salescrm.models directly.
"""

# =============================================================================
# Enums
# =============================================================================

from salescrm.models.enums import (
    Collection,
    ForecastConfidence,
    KpiMetric,
    KpiStatus,
    MeetingOutcome,
    MeetingStatus,
    MeetingType,
    RmStatus,
    TimeRange,
    Urgency,
)

# =============================================================================
# Schemas
# =============================================================================

from salescrm.models.schemas import (
    # Collection records
    CrmRecord,
    RelationshipManager,
    ChannelPartner,
    Meeting,
    Sale,
    Target,
    KpiSnapshot,
    # KPI engine results
    PeriodWindow,
    MetricValues,
    MetricPercentages,
    RmPerformance,
    TeamPerformance,
    Recommendation,
    KpiAnalytics,
    Prediction,
    BacklogItem,
    RmDashboard,
    # Record workflow requests
    ChannelPartnerOnboardRequest,
    DealDetails,
    MeetingLogRequest,
    MeetingLogResult,
    SaleRecordRequest,
)


__all__ = [
    'Collection',
    'ForecastConfidence',
    'KpiMetric',
    'KpiStatus',
    'MeetingOutcome',
    'MeetingStatus',
    'MeetingType',
    'RmStatus',
    'TimeRange',
    'Urgency',
    'CrmRecord',
    'RelationshipManager',
    'ChannelPartner',
    'Meeting',
    'Sale',
    'Target',
    'KpiSnapshot',
    'PeriodWindow',
    'MetricValues',
    'MetricPercentages',
    'RmPerformance',
    'TeamPerformance',
    'Recommendation',
    'KpiAnalytics',
    'Prediction',
    'BacklogItem',
    'RmDashboard',
    'ChannelPartnerOnboardRequest',
    'DealDetails',
    'MeetingLogRequest',
    'MeetingLogResult',
    'SaleRecordRequest',
]
