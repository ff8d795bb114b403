"""
Модели данных движка оповещений
"""

from .base import Base, BaseModel
from .notification import (
    RULES,
    VIOLATION_TYPES,
    Notification,
    NotificationCategory,
    NotificationStatus,
    RuleTag,
    build_open_key,
    get_rule,
)
from .project import Project, ProjectRole, ProjectStatus, ProjectUserRole
from .sprint import Sprint, SprintStatus, SprintVelocity
from .task import Story, Task, TaskStatus
from .tenant import SubscriptionStatus, Tenant, TenantStatus, TenantSubscription
from .timesheet import DailyTimesheetStatus, Timesheet, TimesheetStatus, UserTimesheet
from .user import CustomRole, User, UserRole, UserStatus

__all__ = [
    "Base",
    "BaseModel",
    "Notification",
    "NotificationCategory",
    "NotificationStatus",
    "RuleTag",
    "RULES",
    "VIOLATION_TYPES",
    "build_open_key",
    "get_rule",
    "Project",
    "ProjectRole",
    "ProjectStatus",
    "ProjectUserRole",
    "Sprint",
    "SprintStatus",
    "SprintVelocity",
    "Story",
    "Task",
    "TaskStatus",
    "Tenant",
    "TenantStatus",
    "SubscriptionStatus",
    "TenantSubscription",
    "Timesheet",
    "TimesheetStatus",
    "DailyTimesheetStatus",
    "UserTimesheet",
    "User",
    "UserRole",
    "CustomRole",
    "UserStatus",
]
