"""
Sales CRM Services Module

Business logic consumed by the API layer (salescrm/api/). Analytics services
are pure functions over a KpiSnapshot and an explicit evaluation instant;
record workflows take the store they write to as an argument.

Services:
- periods: Reporting window resolution and lenient date parsing
- kpi_engine: KPI aggregation engine (per-RM and team target progress)
- rm_dashboard: Personal RM dashboard built on the engine
- records: Onboarding, meeting log and sale recording workflows
"""

# =============================================================================
# Period Resolution
# =============================================================================

from salescrm.services.periods import (
    current_period_key,
    in_period,
    parse_timestamp,
    resolve_period,
    start_date,
    total_days,
)

# =============================================================================
# KPI Aggregation Engine
# =============================================================================

from salescrm.services.kpi_engine import (
    RecommendationThresholds,
    build_rm_performance,
    classify_status,
    compute_kpi_analytics,
    compute_rm_achievement,
    compute_rm_performances,
    compute_team_performance,
    find_target,
    generate_recommendations,
    percentage_of_target,
    project_end_values,
    rank_performers,
    required_daily_pace,
)

# =============================================================================
# RM Dashboard
# =============================================================================

from salescrm.services.rm_dashboard import (
    backlog_item,
    build_rm_dashboard,
    coaching_tips,
    run_rate_prediction,
)

# =============================================================================
# Record Workflows
# =============================================================================

from salescrm.services.records import (
    RecordValidationError,
    log_meeting,
    onboard_channel_partner,
    record_sale,
)


__all__ = [
    'current_period_key',
    'in_period',
    'parse_timestamp',
    'resolve_period',
    'start_date',
    'total_days',
    'RecommendationThresholds',
    'build_rm_performance',
    'classify_status',
    'compute_kpi_analytics',
    'compute_rm_achievement',
    'compute_rm_performances',
    'compute_team_performance',
    'find_target',
    'generate_recommendations',
    'percentage_of_target',
    'project_end_values',
    'rank_performers',
    'required_daily_pace',
    'backlog_item',
    'build_rm_dashboard',
    'coaching_tips',
    'run_rate_prediction',
    'RecordValidationError',
    'log_meeting',
    'onboard_channel_partner',
    'record_sale',
]
