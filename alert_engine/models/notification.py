"""
Модель уведомлений и каталог правил оповещений
"""

import uuid
from datetime import datetime, timedelta
from enum import Enum
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from alert_engine.core.constants import (
    REWARD_COOLDOWN_DAYS,
    REWORK_LOOKBACK_DAYS,
    SPRINT_ALERT_COOLDOWN_HOURS,
    SYSTEM_SENDER_NAME,
)
from alert_engine.models.base import BaseModel, _utcnow
from alert_engine.schemas.notification import DedupStrategy, RuleDefinition


class NotificationStatus(str):
    """Жизненный цикл уведомления"""

    OPEN = "OPEN"
    RESOLVED = "RESOLVED"


class NotificationCategory(str):
    """Категории отображения в UI"""

    ALERT = "alert"
    ALARM = "alarm"
    GENERAL = "general"


class RuleTag(str, Enum):
    """Закрытый перечень тегов правил (значение хранится в Notification.type)"""

    TASK_OVERDUE = "task_overdue_alert"
    TASK_ESCALATION = "task_escalation_alert"
    SPRINT_OVERDUE_TASKS = "PM_MULTIPLE_OVERDUE_TASKS"
    LOW_WORKLOAD = "low_workload_alert"
    OVERALLOCATION = "PM_OVERALLOCATION_RISK"
    PENDING_TIMESHEET = "pending_timesheet_alert"
    PM_APPROVAL_BACKLOG = "pending_pm_summary"
    CONTEXT_SWITCHING = "context_switching_alert"
    TIMESHEET_MISSING = "timesheet_missing_alert"
    TRIAL_EXPIRED = "subscription_expired"
    USER_CONSISTENT = "USER_CONSISTENT"
    VELOCITY_DROP = "PM_VELOCITY_DROP"
    CONSISTENT_VELOCITY_DROP = "PM_CONSISTENT_VELOCITY_DROP"
    REWORK_ALERT = "rework_alert"
    REWORK_ALARM = "rework_alarm"
    HIGH_REWORK_ALARM = "high_rework_alarm"
    OVERWORK_ALARM = "overwork_alarm"
    OVERWORK_PLAN = "overwork_plan_alert"
    TIMESHEET_LOCKOUT = "timesheet_lockout_alarm"
    TEAM_MEMBER_LOCKOUT = "team_member_lockout_notice"
    LOW_LOGGED_HOURS = "low_logged_hours"
    IDLE_TIME = "idle_time_alert"
    UNDER_UTILIZATION = "under_utilization_alert"
    LOW_TEAM_UTILIZATION = "PM_LOW_TEAM_UTILIZATION"
    CRITICAL_UNDERUTILIZATION = "PM_CRITICAL_UNDERUTILIZATION_ALARM"
    DEADLINE_RISK = "PM_DEADLINE_RISK"


RULES: dict[RuleTag, RuleDefinition] = {
    RuleTag.TASK_OVERDUE: RuleDefinition(
        category=NotificationCategory.ALERT,
        rule_id="VIEWER_ALERT_TASK_OVERDUE",
        entity_type="task",
        strategy=DedupStrategy.OPEN,
    ),
    RuleTag.TASK_ESCALATION: RuleDefinition(
        category=NotificationCategory.ALERT,
        rule_id="MANAGER_ESCALATION_TASK_OVERDUE",
        entity_type="task",
        strategy=DedupStrategy.OPEN,
        email_template="task_escalation",
    ),
    RuleTag.SPRINT_OVERDUE_TASKS: RuleDefinition(
        category=NotificationCategory.ALERT,
        rule_id="PM_MULTIPLE_OVERDUE_TASKS",
        scope="project",
        entity_type="sprint",
        strategy=DedupStrategy.WINDOW,
        cooldown=timedelta(hours=SPRINT_ALERT_COOLDOWN_HOURS),
        match_subject=True,
        email_template="multiple_overdue_alarm",
    ),
    RuleTag.LOW_WORKLOAD: RuleDefinition(
        category=NotificationCategory.ALERT,
        rule_id="LOW_WORKLOAD_WEEKLY",
        entity_type="user",
        strategy=DedupStrategy.OPEN,
    ),
    RuleTag.OVERALLOCATION: RuleDefinition(
        category=NotificationCategory.ALERT,
        rule_id="PM_OVERALLOCATION_RISK",
        entity_type="user",
        strategy=DedupStrategy.WINDOW,
        since_local_day=True,
        match_subject=True,
    ),
    RuleTag.PENDING_TIMESHEET: RuleDefinition(
        category=NotificationCategory.ALERT,
        rule_id="STALE_PENDING_TIMESHEET",
        strategy=DedupStrategy.WINDOW,
        since_local_day=True,
    ),
    RuleTag.PM_APPROVAL_BACKLOG: RuleDefinition(
        category=NotificationCategory.GENERAL,
        rule_id="PM_APPROVAL_BACKLOG",
        strategy=DedupStrategy.WINDOW,
        since_local_day=True,
    ),
    RuleTag.CONTEXT_SWITCHING: RuleDefinition(
        category=NotificationCategory.GENERAL,
        rule_id="FREQUENT_CONTEXT_SWITCHING",
        strategy=DedupStrategy.WINDOW,
        since_local_day=True,
    ),
    RuleTag.TIMESHEET_MISSING: RuleDefinition(
        category=NotificationCategory.ALERT,
        rule_id="TIMESHEET_MANDATORY_EIGHT_HOURS",
        entity_type="user",
        strategy=DedupStrategy.OPEN,
        email_template="timesheet_missing_alert",
    ),
    RuleTag.TRIAL_EXPIRED: RuleDefinition(
        category=NotificationCategory.ALARM,
        rule_id="TRIAL_EXPIRED_SUSPENDED",
        scope="tenant",
        entity_type="tenant",
        strategy=DedupStrategy.OPEN,
        email_template="subscription_expired",
    ),
    RuleTag.USER_CONSISTENT: RuleDefinition(
        category=NotificationCategory.GENERAL,
        rule_id="USER_CONSISTENT_COMPLIANCE",
        entity_type="user",
        strategy=DedupStrategy.WINDOW,
        cooldown=timedelta(days=REWARD_COOLDOWN_DAYS),
    ),
    RuleTag.VELOCITY_DROP: RuleDefinition(
        category=NotificationCategory.ALERT,
        rule_id="PM_VELOCITY_DROP",
        scope="project",
        entity_type="sprint",
        strategy=DedupStrategy.WINDOW,
        since_local_day=True,
        match_subject=True,
    ),
    RuleTag.CONSISTENT_VELOCITY_DROP: RuleDefinition(
        category=NotificationCategory.ALARM,
        rule_id="PM_CONSISTENT_VELOCITY_DROP",
        scope="project",
        entity_type="sprint",
        strategy=DedupStrategy.WINDOW,
        since_local_day=True,
        match_subject=True,
        email_template="consistent_velocity_drop",
    ),
    RuleTag.REWORK_ALERT: RuleDefinition(
        category=NotificationCategory.ALERT,
        rule_id="REWORK_LOGGED",
        entity_type="user",
        strategy=DedupStrategy.WINDOW,
        cooldown=timedelta(days=REWORK_LOOKBACK_DAYS),
        email_template="rework_alert",
    ),
    RuleTag.REWORK_ALARM: RuleDefinition(
        category=NotificationCategory.ALARM,
        rule_id="HIGH_REWORK",
        entity_type="user",
        strategy=DedupStrategy.OPEN,
        email_template="rework_alarm",
    ),
    RuleTag.HIGH_REWORK_ALARM: RuleDefinition(
        category=NotificationCategory.ALARM,
        rule_id="CRITICAL_REWORK",
        entity_type="user",
        strategy=DedupStrategy.OPEN,
        email_template="high_rework_alarm",
    ),
    RuleTag.OVERWORK_ALARM: RuleDefinition(
        category=NotificationCategory.ALARM,
        rule_id="OVERWORK_WEEKLY_PLAN",
        entity_type="user",
        strategy=DedupStrategy.WINDOW,
        since_local_day=True,
        email_template="overwork_alarm",
    ),
    RuleTag.OVERWORK_PLAN: RuleDefinition(
        category=NotificationCategory.ALARM,
        rule_id="MANAGER_OVERWORK_PLAN",
        entity_type="user",
        strategy=DedupStrategy.OPEN,
    ),
    RuleTag.TIMESHEET_LOCKOUT: RuleDefinition(
        category=NotificationCategory.ALARM,
        rule_id="TIMESHEET_LOCKOUT_REPEATED_MISSING",
        entity_type="user",
        strategy=DedupStrategy.OPEN,
        email_template="timesheet_lockout_alarm",
    ),
    RuleTag.TEAM_MEMBER_LOCKOUT: RuleDefinition(
        category=NotificationCategory.ALERT,
        rule_id="TEAM_MEMBER_LOCKED",
        entity_type="user",
        strategy=DedupStrategy.WINDOW,
        since_local_day=True,
        match_subject=True,
        email_template="team_member_lockout_notice",
    ),
    RuleTag.LOW_LOGGED_HOURS: RuleDefinition(
        category=NotificationCategory.ALERT,
        rule_id="LOW_LOGGED_HOURS_3_DAYS",
        entity_type="user",
        strategy=DedupStrategy.WINDOW,
        since_local_day=True,
        email_template="low_logged_hours",
    ),
    RuleTag.IDLE_TIME: RuleDefinition(
        category=NotificationCategory.GENERAL,
        rule_id="SIGNIFICANT_IDLE_TIME",
        entity_type="user",
        strategy=DedupStrategy.WINDOW,
        since_local_day=True,
    ),
    RuleTag.UNDER_UTILIZATION: RuleDefinition(
        category=NotificationCategory.ALERT,
        rule_id="UNDER_UTILIZATION_30_DAYS",
        entity_type="user",
        strategy=DedupStrategy.WINDOW,
        since_local_day=True,
        email_template="under_utilization_alert",
    ),
    RuleTag.LOW_TEAM_UTILIZATION: RuleDefinition(
        category=NotificationCategory.ALERT,
        rule_id="PM_LOW_TEAM_UTILIZATION",
        scope="project",
        entity_type="project",
        strategy=DedupStrategy.WINDOW,
        since_local_day=True,
        match_subject=True,
        email_template="team_utilization",
    ),
    RuleTag.CRITICAL_UNDERUTILIZATION: RuleDefinition(
        category=NotificationCategory.ALARM,
        rule_id="PM_CRITICAL_UNDERUTILIZATION_ALARM",
        scope="project",
        entity_type="project",
        strategy=DedupStrategy.WINDOW,
        since_local_day=True,
        match_subject=True,
        email_template="team_utilization",
    ),
    RuleTag.DEADLINE_RISK: RuleDefinition(
        category=NotificationCategory.ALARM,
        rule_id="PM_DEADLINE_RISK",
        scope="project",
        entity_type="project",
        strategy=DedupStrategy.WINDOW,
        since_local_day=True,
        match_subject=True,
        email_template="deadline_risk",
    ),
}


# Теги нарушений, исключающие поощрение (включая теги других частей платформы)
VIOLATION_TYPES: tuple[str, ...] = (
    "timesheet_missing_alert",
    "timesheet_missing_alarm",
    "timesheet_incomplete_alert",
    "timesheet_lockout_alarm",
    "timesheet_late_submission",
    "timesheet_lock",
    "task_delay_alarm",
    "task_overdue_alert",
    "multiple_overdue_alarm",
    "multiple_overdue_escalation",
    "productivity_alert",
    "productivity_alarm",
    "efficiency_alert",
    "efficiency_alarm",
    "rework_alert",
    "rework_alarm",
    "high_rework_alarm",
    "PM_VELOCITY_DROP",
    "PM_CONSISTENT_VELOCITY_DROP",
    "idle_time_alert",
    "under_utilization_alert",
)


def get_rule(tag: RuleTag | str) -> RuleDefinition:
    """Описание правила по тегу"""
    return RULES[RuleTag(tag)]


def build_open_key(recipient_email: str, tag: RuleTag | str, subject_id: Any) -> str:
    """Ключ уникальности OPEN-уведомления: получатель|тег|субъект"""
    return f"{recipient_email.lower()}|{RuleTag(tag).value}|{subject_id}"


class Notification(BaseModel):
    """Уведомление пользователя (единица дедупликации)"""

    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_recipient_type_status", "recipient_email", "type", "status"),
    )

    tenant_id: Mapped[str | None] = mapped_column(
        String(64),
        index=True,
        nullable=True,
        comment="ID организации",
    )

    recipient_email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Email получателя",
    )

    user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        index=True,
        nullable=True,
        comment="ID получателя",
    )

    type: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="Тег правила",
    )

    category: Mapped[str] = mapped_column(
        String(20),
        default=NotificationCategory.GENERAL,
        nullable=False,
    )
    rule_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    scope: Mapped[str | None] = mapped_column(String(20), nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        default=NotificationStatus.OPEN,
        nullable=False,
        comment="OPEN / RESOLVED",
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)

    # Субъект уведомления
    entity_type: Mapped[str | None] = mapped_column(String(32), nullable=True)
    entity_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), index=True, nullable=True
    )
    project_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), nullable=True
    )

    link: Mapped[str | None] = mapped_column(String(500), nullable=True)
    sender_name: Mapped[str] = mapped_column(
        String(100), default=SYSTEM_SENDER_NAME, nullable=False
    )
    read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Заполнен только пока уведомление OPEN
    open_key: Mapped[str | None] = mapped_column(
        String(512),
        unique=True,
        nullable=True,
        comment="Ключ уникальности OPEN-уведомления",
    )

    data: Mapped[dict[str, Any] | None] = mapped_column(
        JSON,
        nullable=True,
        comment="Дополнительные данные правила",
    )

    # Используется UI для сортировки ("поднять наверх" при обновлении)
    created_date: Mapped[datetime] = mapped_column(
        DateTime,
        default=_utcnow,
        index=True,
        nullable=False,
    )
    updated_date: Mapped[datetime] = mapped_column(
        DateTime,
        default=_utcnow,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Notification(type={self.type}, recipient={self.recipient_email}, status={self.status})>"

    def to_dict(self) -> dict[str, Any]:
        """Преобразовать уведомление в словарь (формат обмена с UI)"""
        return {
            "id": str(self.id),
            "tenant_id": self.tenant_id,
            "recipient_email": self.recipient_email,
            "user_id": str(self.user_id) if self.user_id else None,
            "type": self.type,
            "category": self.category,
            "rule_id": self.rule_id,
            "scope": self.scope,
            "status": self.status,
            "title": self.title,
            "message": self.message,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "project_id": str(self.project_id) if self.project_id else None,
            "link": self.link,
            "sender_name": self.sender_name,
            "read": self.read,
            "data": self.data,
            "created_date": self.created_date.isoformat() if self.created_date else None,
            "updated_date": self.updated_date.isoformat() if self.updated_date else None,
        }
