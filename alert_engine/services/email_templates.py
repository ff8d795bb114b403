"""
Шаблоны писем оповещений
"""

from collections.abc import Callable
from datetime import UTC, date, datetime
from html import escape
from typing import Any

from pydantic import BaseModel

from alert_engine.core.config import settings


class EmailContent(BaseModel):
    """Готовое письмо"""

    subject: str
    html: str
    text: str


def _base_html(title: str, greeting: str, rows: list[tuple[str, Any]], body: str, button: tuple[str, str] | None) -> str:
    year = datetime.now(UTC).year
    info = "".join(
        f'<div style="margin: 8px 0;"><strong>{escape(label)}:</strong> {escape(str(value))}</div>'
        for label, value in rows
        if value not in (None, "")
    )
    action = ""
    if button:
        action = (
            f'<p style="text-align: center;"><a href="{escape(button[1])}" '
            f'style="background-color: #2563eb; color: #ffffff; padding: 12px 28px;">'
            f"{escape(button[0])}</a></p>"
        )
    return (
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\">"
        f"<title>{escape(title)}</title></head>"
        "<body style=\"font-family: 'Segoe UI', Roboto, Arial, sans-serif;\">"
        f"<h1>{escape(settings.EMAILS_FROM_NAME)}</h1>"
        f"<p><strong>{escape(greeting)}</strong></p>"
        f"<p>{escape(body)}</p>"
        f'<div style="background-color: #f8fafc; padding: 20px;">{info}</div>'
        f"{action}"
        f"<p style=\"font-size: 12px;\">&copy; {year} {escape(settings.EMAILS_FROM_NAME)}. "
        "This is an automated notification.</p>"
        "</body></html>"
    )


def _base_text(greeting: str, rows: list[tuple[str, Any]], body: str, url: str | None) -> str:
    lines = [greeting, "", body, ""]
    lines += [f"{label}: {value}" for label, value in rows if value not in (None, "")]
    if url:
        lines += ["", url]
    return "\n".join(lines)


def _format_day(value: Any) -> str:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value) if value else ""


def _render(
    subject: str,
    title: str,
    greeting: str,
    body: str,
    rows: list[tuple[str, Any]],
    button: tuple[str, str] | None = None,
) -> EmailContent:
    return EmailContent(
        subject=subject,
        html=_base_html(title, greeting, rows, body, button),
        text=_base_text(greeting, rows, body, button[1] if button else None),
    )


def task_escalation(data: dict[str, Any]) -> EmailContent:
    """Эскалация просроченной задачи менеджеру"""
    days = data.get("days_overdue", 0)
    return _render(
        subject=f"🔥 Escalation: Task Overdue ({days} Days) - {data.get('task_title', '')}",
        title="Escalation: Task Overdue",
        greeting=f"Hello, {data.get('recipient_name') or 'Manager'}",
        body="A task in your project is significantly overdue and requires your attention.",
        rows=[
            ("Task", data.get("task_title")),
            ("Project", data.get("project_name")),
            ("Assignees", data.get("assignees")),
            ("Days Overdue", days),
        ],
        button=("View Task", data["task_url"]) if data.get("task_url") else None,
    )


def multiple_overdue_alarm(data: dict[str, Any]) -> EmailContent:
    """Много просроченных задач в спринте"""
    count = data.get("overdue_count", 0)
    return _render(
        subject=f"🚨 CRITICAL: {count} Overdue Tasks - Action Required",
        title="Critical Alarm: Multiple Overdue Tasks",
        greeting=f"Hello, {data.get('recipient_name') or data.get('recipient_email', '')}",
        body=(
            "Multiple tasks are currently overdue. Reprioritization is required "
            "to ensure project timelines are met."
        ),
        rows=[
            ("Sprint", data.get("sprint_name")),
            ("Overdue Count", f"{count} tasks"),
            ("Overdue Share", data.get("overdue_percent")),
            ("Recent Tasks", data.get("task_titles")),
        ],
        button=("View Sprint", data["dashboard_url"]) if data.get("dashboard_url") else None,
    )


def timesheet_missing_alert(data: dict[str, Any]) -> EmailContent:
    """Незаполненный табель"""
    missing = _format_day(data.get("missing_date"))
    return _render(
        subject=f"🚨 Missing Timesheet Entry Required ({missing})",
        title="Missing Timesheet Entry",
        greeting=f"Hello, {data.get('user_name') or data.get('user_email', '')}",
        body=f"Mandatory: 8 hours required for {missing}. Please log your pending hours.",
        rows=[("Date", missing), ("Logged Minutes", data.get("logged_minutes"))],
        button=("Open Timesheets", data["timesheets_url"]) if data.get("timesheets_url") else None,
    )


def consistent_velocity_drop(data: dict[str, Any]) -> EmailContent:
    """Скорость ниже порога два спринта подряд"""
    project = data.get("project_name", "")
    return _render(
        subject=f"🚨 Alarm: Consistent Low Velocity - {project}",
        title="Consistent Low Velocity Alarm",
        greeting=f"Hello, {data.get('recipient_name') or 'Manager'}",
        body=(
            f"{project} velocity is critically low (<85%) for 2 consecutive sprints. "
            "Immediate review required."
        ),
        rows=[
            ("Latest Sprint", data.get("sprint_name")),
            ("Latest Velocity", data.get("latest_velocity")),
            ("Previous Sprint", data.get("previous_sprint_name")),
            ("Previous Velocity", data.get("previous_velocity")),
        ],
        button=("View Project", data["project_url"]) if data.get("project_url") else None,
    )


def subscription_expired(data: dict[str, Any]) -> EmailContent:
    """Истек пробный период"""
    return _render(
        subject="🚨 Your Groona Subscription Has Expired",
        title="Subscription Expired",
        greeting=f"Hello, {data.get('user_name') or data.get('user_email') or 'Valued Customer'}",
        body=(
            f"Your {data.get('plan_name') or 'Groona'} subscription has expired. To regain "
            "full access to all features, please renew your subscription."
        ),
        rows=[
            ("Account", data.get("user_email")),
            ("Expired On", _format_day(data.get("expiry_date"))),
            ("Status", "PAST DUE"),
        ],
        button=("Renew Subscription", data["renewal_url"]) if data.get("renewal_url") else None,
    )


def _rework_email(data: dict[str, Any], subject: str, title: str, body: str) -> EmailContent:
    return _render(
        subject=subject,
        title=title,
        greeting=f"Hello, {data.get('user_name') or data.get('user_email', '')}",
        body=body,
        rows=[
            ("Rework Share", data.get("rework_percent")),
            ("Rework Hours", data.get("rework_hours")),
            ("Total Hours", data.get("total_hours")),
            ("Period", data.get("period")),
        ],
        button=("Open Timesheets", data["timesheets_url"]) if data.get("timesheets_url") else None,
    )


def rework_alert(data: dict[str, Any]) -> EmailContent:
    """Переделки в табеле за неделю"""
    return _rework_email(
        data,
        subject="Rework Logged",
        title="Rework Logged",
        body=(
            f"You have logged rework time recently ({data.get('rework_percent', '')} of total). "
            "Please ensure quality and clarity of requirements."
        ),
    )


def rework_alarm(data: dict[str, Any]) -> EmailContent:
    """Доля переделок выше 15%"""
    return _rework_email(
        data,
        subject="⚠️ High Rework Detected",
        title="High Rework Detected",
        body=(
            f"Your rework time is at {data.get('rework_percent', '')}, exceeding the 15% "
            "threshold. Peer review is recommended."
        ),
    )


def high_rework_alarm(data: dict[str, Any]) -> EmailContent:
    """Доля переделок выше 25%"""
    return _rework_email(
        data,
        subject="🚨 Critical Rework Detected",
        title="Critical Rework Detected",
        body=(
            f"Your rework time is at {data.get('rework_percent', '')}, exceeding the 25% "
            "threshold. Task assignments are frozen. Peer review required."
        ),
    )


def overwork_alarm(data: dict[str, Any]) -> EmailContent:
    """План недели выше 66 часов"""
    return _render(
        subject="🚨 Overwork Alert",
        title="Overwork Alert",
        greeting=f"Hello, {data.get('user_name') or data.get('user_email', '')}",
        body=(
            "You've been working long hours consistently. Please discuss workload "
            "adjustment with your manager."
        ),
        rows=[
            ("Planned Hours", data.get("total_hours")),
            ("Weekly Limit", data.get("limit_hours")),
        ],
    )


def timesheet_lockout_alarm(data: dict[str, Any]) -> EmailContent:
    """Блокировка табеля за повторные пропуски"""
    count = data.get("missing_count", 0)
    return _render(
        subject="🚨 Timesheets Locked: Repeated Non-Compliance",
        title="Timesheets Locked",
        greeting=f"Hello, {data.get('user_name') or data.get('user_email', '')}",
        body=(
            f"You have missed {count} daily timesheets in the last week. Your ability to "
            "log new time is LOCKED until you fill in the missing days."
        ),
        rows=[("Missing Days", data.get("missing_dates"))],
        button=("Open Timesheets", data["timesheets_url"]) if data.get("timesheets_url") else None,
    )


def team_member_lockout_notice(data: dict[str, Any]) -> EmailContent:
    """Сотрудник заблокирован за пропуски табеля"""
    member = data.get("member_name", "")
    return _render(
        subject=f"Alert: {member} Timesheet Lockout",
        title="Team Member Locked",
        greeting=f"Hello, {data.get('recipient_name') or data.get('recipient_email') or 'Manager'}",
        body=(
            f"{member} has been locked out of timesheets due to "
            f"{data.get('missing_count', 0)} missing entries in the last week."
        ),
        rows=[
            ("Team Member", data.get("member_email")),
            ("Missing Days", data.get("missing_dates")),
        ],
    )


def low_logged_hours(data: dict[str, Any]) -> EmailContent:
    """Мало часов три рабочих дня подряд"""
    return _render(
        subject="📉 Low Logged Hours Alert",
        title="Low Logged Hours",
        greeting=f"Hello, {data.get('user_name') or data.get('user_email', '')}",
        body=(
            "Your logged hours are below your declared availability. "
            "Please review your workload."
        ),
        rows=[
            ("Daily Availability", data.get("daily_hours")),
            ("Logged", data.get("day_logs")),
        ],
        button=("Open Timesheets", data["timesheets_url"]) if data.get("timesheets_url") else None,
    )


def under_utilization_alert(data: dict[str, Any]) -> EmailContent:
    """Средняя загрузка за 30 рабочих дней ниже 60%"""
    percent = data.get("utilization_percent", "")
    return _render(
        subject="Under-Utilization Alert",
        title="Under-Utilization Alert",
        greeting=f"Hello, {data.get('user_name') or data.get('user_email', '')}",
        body=(
            f"You appear under-utilized ({percent} over last 30 days). "
            "Please discuss allocation with your manager."
        ),
        rows=[
            ("Logged Hours", data.get("logged_hours")),
            ("Available Hours", data.get("available_hours")),
        ],
    )


def team_utilization(data: dict[str, Any]) -> EmailContent:
    """Низкая загрузка команды проекта (предупреждение или тревога)"""
    project = data.get("project_name", "")
    if data.get("is_alarm"):
        subject = f"🚨 Critical Underutilization Alarm: {project}"
        title = "Critical Underutilization Alarm"
        body = (
            f"Critical underutilization detected for {project}. Project efficiency may be "
            "impacted. Review and redistribute tasks."
        )
    else:
        subject = f"⚠️ Low Team Utilization Alert: {project}"
        title = "Low Team Utilization Alert"
        body = f"Team utilization for {project} is below target. Consider reallocation."
    return _render(
        subject=subject,
        title=title,
        greeting=f"Hello, {data.get('recipient_name') or 'Manager'}",
        body=body,
        rows=[
            ("Period", data.get("period")),
            ("Team Capacity", data.get("capacity_hours")),
            ("Hours Logged", data.get("logged_hours")),
            ("Utilization", data.get("utilization_percent")),
        ],
        button=("View Team", data["project_url"]) if data.get("project_url") else None,
    )


def deadline_risk(data: dict[str, Any]) -> EmailContent:
    """Прогноз завершения позже срока проекта"""
    project = data.get("project_name", "")
    return _render(
        subject=f"🚨 Project Deadline Risk: {project}",
        title="Project Deadline Risk",
        greeting=f"Hello, {data.get('recipient_name') or 'Manager'}",
        body=(
            f"The forecast for {project} exceeds the deadline by "
            f"{data.get('days_late', 0)} days based on current velocity."
        ),
        rows=[
            ("Deadline", _format_day(data.get("deadline"))),
            ("Forecast", _format_day(data.get("forecast_date"))),
            ("Remaining Points", data.get("remaining_points")),
            ("Average Velocity", data.get("average_velocity")),
        ],
        button=("View Project", data["project_url"]) if data.get("project_url") else None,
    )


TEMPLATES: dict[str, Callable[[dict[str, Any]], EmailContent]] = {
    "task_escalation": task_escalation,
    "multiple_overdue_alarm": multiple_overdue_alarm,
    "timesheet_missing_alert": timesheet_missing_alert,
    "consistent_velocity_drop": consistent_velocity_drop,
    "subscription_expired": subscription_expired,
    "rework_alert": rework_alert,
    "rework_alarm": rework_alarm,
    "high_rework_alarm": high_rework_alarm,
    "overwork_alarm": overwork_alarm,
    "timesheet_lockout_alarm": timesheet_lockout_alarm,
    "team_member_lockout_notice": team_member_lockout_notice,
    "low_logged_hours": low_logged_hours,
    "under_utilization_alert": under_utilization_alert,
    "team_utilization": team_utilization,
    "deadline_risk": deadline_risk,
}


def render_template(template_key: str, data: dict[str, Any]) -> EmailContent:
    """
    Письмо по ключу шаблона

    Raises:
        KeyError: Неизвестный ключ шаблона
    """
    try:
        builder = TEMPLATES[template_key]
    except KeyError:
        raise KeyError(f"Неизвестный шаблон письма: {template_key}") from None
    return builder(data)
