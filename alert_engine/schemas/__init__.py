"""
Pydantic схемы движка оповещений
"""

from .notification import (
    DedupStrategy,
    DispatchOutcome,
    DispatchResult,
    NotificationDraft,
    PendingEmail,
    RuleDefinition,
    SubjectRef,
)
from .snapshots import (
    DailyTimesheetSnapshot,
    SprintSnapshot,
    StorySnapshot,
    TaskSnapshot,
    TimesheetSnapshot,
    VelocityRecordSnapshot,
)

__all__ = [
    "DedupStrategy",
    "DispatchOutcome",
    "DispatchResult",
    "NotificationDraft",
    "PendingEmail",
    "RuleDefinition",
    "SubjectRef",
    "DailyTimesheetSnapshot",
    "SprintSnapshot",
    "StorySnapshot",
    "TaskSnapshot",
    "TimesheetSnapshot",
    "VelocityRecordSnapshot",
]
