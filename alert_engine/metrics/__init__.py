"""
Расчет производных метрик (чистые функции над снимками)
"""

from .compliance import (
    DailyRollup,
    first_missing_date,
    missing_submission_days,
    rollup_timesheets,
)
from .context_switch import ContextSwitchReport, context_switch_report
from .forecast import (
    DeadlineForecast,
    average_velocity,
    forecast_deadline,
    remaining_story_points,
)
from .overdue import days_overdue, is_overdue, overdue_ratio, task_days_overdue
from .utilization import (
    ReworkShare,
    TeamUtilization,
    average_utilization,
    daily_available_minutes,
    idle_percent,
    last_working_days,
    parse_working_days,
    rework_share,
    team_capacity_hours,
)
from .velocity import VelocityMetrics, VelocityTrend, compute_sprint_velocity, velocity_trend
from .workload import (
    UserLoad,
    compute_story_load,
    is_underloaded,
    planned_week_hours,
    weekly_assigned_hours,
    weekly_capacity,
)

__all__ = [
    "DailyRollup",
    "first_missing_date",
    "missing_submission_days",
    "rollup_timesheets",
    "ContextSwitchReport",
    "context_switch_report",
    "DeadlineForecast",
    "average_velocity",
    "forecast_deadline",
    "remaining_story_points",
    "days_overdue",
    "is_overdue",
    "overdue_ratio",
    "task_days_overdue",
    "ReworkShare",
    "TeamUtilization",
    "average_utilization",
    "daily_available_minutes",
    "idle_percent",
    "last_working_days",
    "parse_working_days",
    "rework_share",
    "team_capacity_hours",
    "VelocityMetrics",
    "VelocityTrend",
    "compute_sprint_velocity",
    "velocity_trend",
    "UserLoad",
    "compute_story_load",
    "is_underloaded",
    "planned_week_hours",
    "weekly_assigned_hours",
    "weekly_capacity",
]
