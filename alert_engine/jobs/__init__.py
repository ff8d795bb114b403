"""
Задания правил оповещений

Каждое задание запускается отдельным процессом:
python -m alert_engine.jobs.<имя> или консольной командой alert-<имя>.
"""

from .base import JobReport, RuleJob, run_job_main
from .consistent_compliance import ConsistentComplianceJob
from .context_switching import ContextSwitchingJob
from .deadline_risk import DeadlineRiskJob
from .low_logged_hours import LowLoggedHoursJob
from .low_velocity import LowVelocityJob
from .low_workload import LowWorkloadJob
from .overallocation import OverallocationJob
from .overwork import OverworkJob
from .pending_timesheets import PendingTimesheetsJob
from .rework_alarm import ReworkAlarmJob
from .sprint_overdue_ratio import SprintOverdueRatioJob
from .sprint_velocity_sync import SprintVelocitySyncJob
from .task_overdue import TaskOverdueJob
from .team_utilization import TeamUtilizationJob
from .timesheet_compliance import TimesheetComplianceJob
from .timesheet_lockout import TimesheetLockoutJob
from .timesheet_rollup import TimesheetRollupJob
from .trial_expiry import TrialExpiryJob
from .utilization import UtilizationJob

JOBS: dict[str, type[RuleJob]] = {
    job.name: job
    for job in (
        TaskOverdueJob,
        SprintOverdueRatioJob,
        LowWorkloadJob,
        OverallocationJob,
        PendingTimesheetsJob,
        ContextSwitchingJob,
        TimesheetComplianceJob,
        TrialExpiryJob,
        ConsistentComplianceJob,
        SprintVelocitySyncJob,
        LowVelocityJob,
        TimesheetRollupJob,
        ReworkAlarmJob,
        OverworkJob,
        TimesheetLockoutJob,
        LowLoggedHoursJob,
        UtilizationJob,
        TeamUtilizationJob,
        DeadlineRiskJob,
    )
}

__all__ = [
    "JOBS",
    "JobReport",
    "RuleJob",
    "run_job_main",
    "ConsistentComplianceJob",
    "ContextSwitchingJob",
    "DeadlineRiskJob",
    "LowLoggedHoursJob",
    "LowVelocityJob",
    "LowWorkloadJob",
    "OverallocationJob",
    "OverworkJob",
    "PendingTimesheetsJob",
    "ReworkAlarmJob",
    "SprintOverdueRatioJob",
    "SprintVelocitySyncJob",
    "TaskOverdueJob",
    "TeamUtilizationJob",
    "TimesheetComplianceJob",
    "TimesheetLockoutJob",
    "TimesheetRollupJob",
    "TrialExpiryJob",
    "UtilizationJob",
]
