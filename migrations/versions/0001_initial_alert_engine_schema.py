"""Initial alert engine schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-12 09:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _base_columns() -> list[sa.Column]:
    """Общие колонки BaseModel"""
    return [
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, comment="Дата создания (UTC)"),
        sa.Column("updated_at", sa.DateTime(), nullable=False, comment="Дата обновления (UTC)"),
    ]


def _index(table: str, column: str, unique: bool = False) -> None:
    op.create_index(op.f(f"ix_{table}_{column}"), table, [column], unique=unique)


def upgrade() -> None:
    """Create core tables and notifications"""
    op.create_table(
        "tenants",
        *_base_columns(),
        sa.Column("name", sa.String(length=255), nullable=False, comment="Название организации"),
        sa.Column("owner_email", sa.String(length=255), nullable=True, comment="Email владельца"),
        sa.Column("status", sa.String(length=20), nullable=False, comment="Статус организации"),
        sa.Column("subscription_status", sa.String(length=20), nullable=True, comment="Статус оплаты"),
        sa.Column("subscription_plan", sa.String(length=50), nullable=True),
        sa.Column("subscription_type", sa.String(length=50), nullable=True),
        sa.Column(
            "trial_ends_at",
            sa.DateTime(),
            nullable=True,
            comment="Окончание пробного периода (UTC)",
        ),
        sa.Column("subscription_start_date", sa.DateTime(), nullable=True),
        sa.Column("subscription_ends_at", sa.DateTime(), nullable=True),
        sa.Column("max_users", sa.Integer(), nullable=True),
        sa.Column("max_projects", sa.Integer(), nullable=True),
        sa.Column("max_workspaces", sa.Integer(), nullable=True),
        sa.Column("max_storage_gb", sa.Integer(), nullable=True),
        sa.Column("internal_notes", sa.Text(), nullable=True, comment="Служебные заметки"),
        sa.PrimaryKeyConstraint("id"),
    )
    _index("tenants", "id")
    _index("tenants", "status")

    op.create_table(
        "tenant_subscriptions",
        *_base_columns(),
        sa.Column("tenant_id", sa.Uuid(), nullable=False, comment="ID организации"),
        sa.Column("status", sa.String(length=20), nullable=True),
        sa.Column("plan_name", sa.String(length=50), nullable=True),
        sa.Column("subscription_type", sa.String(length=50), nullable=True),
        sa.Column("trial_ends_at", sa.DateTime(), nullable=True),
        sa.Column("start_date", sa.DateTime(), nullable=True),
        sa.Column("end_date", sa.DateTime(), nullable=True),
        sa.Column("max_users", sa.Integer(), nullable=True),
        sa.Column("max_projects", sa.Integer(), nullable=True),
        sa.Column("max_workspaces", sa.Integer(), nullable=True),
        sa.Column("max_storage_gb", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id"),
    )
    _index("tenant_subscriptions", "id")

    op.create_table(
        "users",
        *_base_columns(),
        sa.Column(
            "email",
            sa.String(length=255),
            nullable=False,
            comment="Email пользователя (в нижнем регистре)",
        ),
        sa.Column("full_name", sa.String(length=255), nullable=True, comment="Полное имя пользователя"),
        sa.Column("tenant_id", sa.Uuid(), nullable=True, comment="ID организации"),
        sa.Column("role", sa.String(length=50), nullable=False, comment="Роль пользователя"),
        sa.Column("custom_role", sa.String(length=50), nullable=True, comment="Прикладная роль пользователя"),
        sa.Column("status", sa.String(length=20), nullable=False, comment="Статус пользователя"),
        sa.Column("working_hours_per_day", sa.Integer(), nullable=True, comment="Рабочих часов в день"),
        sa.PrimaryKeyConstraint("id"),
    )
    _index("users", "id")
    _index("users", "email", unique=True)
    _index("users", "tenant_id")
    _index("users", "status")

    op.create_table(
        "projects",
        *_base_columns(),
        sa.Column("tenant_id", sa.Uuid(), nullable=True, comment="ID организации"),
        sa.Column("name", sa.String(length=255), nullable=False, comment="Название проекта"),
        sa.Column(
            "owner",
            sa.String(length=255),
            nullable=True,
            comment="Владелец проекта (email или ID пользователя)",
        ),
        sa.Column("team_members", sa.JSON(), nullable=True, comment="Участники команды проекта"),
        sa.PrimaryKeyConstraint("id"),
    )
    _index("projects", "id")
    _index("projects", "tenant_id")

    op.create_table(
        "project_user_roles",
        *_base_columns(),
        sa.Column("project_id", sa.Uuid(), nullable=False, comment="ID проекта"),
        sa.Column("user_id", sa.Uuid(), nullable=True, comment="ID пользователя"),
        sa.Column("user_email", sa.String(length=255), nullable=True, comment="Email пользователя"),
        sa.Column("role", sa.String(length=50), nullable=False, comment="Роль в проекте"),
        sa.Column("custom_role", sa.String(length=50), nullable=True, comment="Прикладная роль"),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    _index("project_user_roles", "id")
    _index("project_user_roles", "project_id")

    op.create_table(
        "sprints",
        *_base_columns(),
        sa.Column("tenant_id", sa.Uuid(), nullable=True, comment="ID организации"),
        sa.Column("project_id", sa.Uuid(), nullable=True, comment="ID проекта"),
        sa.Column("name", sa.String(length=255), nullable=False, comment="Название спринта"),
        sa.Column("status", sa.String(length=20), nullable=False, comment="Статус спринта"),
        sa.Column("start_date", sa.Date(), nullable=True, comment="Дата начала спринта"),
        sa.Column("end_date", sa.Date(), nullable=True, comment="Дата окончания спринта"),
        sa.Column(
            "committed_points",
            sa.Float(),
            nullable=True,
            comment="Зафиксированный объем (перекрывает сумму историй)",
        ),
        sa.Column("locked_date", sa.DateTime(), nullable=True, comment="Момент фиксации объема спринта"),
        sa.Column("impediments", sa.JSON(), nullable=True, comment="Препятствия"),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    _index("sprints", "id")
    _index("sprints", "tenant_id")
    _index("sprints", "project_id")

    op.create_table(
        "stories",
        *_base_columns(),
        sa.Column("tenant_id", sa.Uuid(), nullable=True, comment="ID организации"),
        sa.Column("project_id", sa.Uuid(), nullable=True, comment="ID проекта"),
        sa.Column("sprint_id", sa.Uuid(), nullable=True, comment="ID спринта"),
        sa.Column("title", sa.String(length=255), nullable=False, comment="Название истории"),
        sa.Column("status", sa.String(length=50), nullable=True, comment="Статус истории"),
        sa.Column("story_points", sa.Float(), nullable=True, comment="Оценка в Story Points"),
        sa.Column("assignees", sa.JSON(), nullable=True, comment="Email исполнителей"),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["sprint_id"], ["sprints.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    _index("stories", "id")
    _index("stories", "tenant_id")
    _index("stories", "project_id")
    _index("stories", "sprint_id")

    op.create_table(
        "tasks",
        *_base_columns(),
        sa.Column("tenant_id", sa.Uuid(), nullable=True, comment="ID организации"),
        sa.Column("project_id", sa.Uuid(), nullable=True, comment="ID проекта"),
        sa.Column("sprint_id", sa.Uuid(), nullable=True, comment="ID спринта"),
        sa.Column("story_id", sa.Uuid(), nullable=True, comment="ID истории"),
        sa.Column("title", sa.String(length=255), nullable=False, comment="Название задачи"),
        sa.Column("status", sa.String(length=50), nullable=False, comment="Статус задачи"),
        sa.Column("assignees", sa.JSON(), nullable=True, comment="Email исполнителей"),
        sa.Column("due_date", sa.DateTime(), nullable=True, comment="Срок выполнения (UTC)"),
        sa.Column("estimated_hours", sa.Float(), nullable=True, comment="Оценка времени в часах"),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["sprint_id"], ["sprints.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["story_id"], ["stories.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    _index("tasks", "id")
    _index("tasks", "tenant_id")
    _index("tasks", "project_id")
    _index("tasks", "sprint_id")
    _index("tasks", "story_id")
    _index("tasks", "due_date")

    op.create_table(
        "sprint_velocities",
        *_base_columns(),
        sa.Column("tenant_id", sa.Uuid(), nullable=True),
        sa.Column("project_id", sa.Uuid(), nullable=True),
        sa.Column("sprint_id", sa.Uuid(), nullable=False),
        sa.Column("sprint_name", sa.String(length=255), nullable=False),
        sa.Column("sprint_status", sa.String(length=20), nullable=False),
        sa.Column("sprint_start_date", sa.Date(), nullable=True),
        sa.Column("sprint_end_date", sa.Date(), nullable=True),
        sa.Column("committed_points", sa.Float(), nullable=False),
        sa.Column("completed_points", sa.Float(), nullable=False),
        sa.Column("velocity_percentage", sa.Float(), nullable=False),
        sa.Column("total_tasks", sa.Integer(), nullable=False),
        sa.Column("completed_tasks", sa.Integer(), nullable=False),
        sa.Column("in_progress_tasks", sa.Integer(), nullable=False),
        sa.Column("not_started_tasks", sa.Integer(), nullable=False),
        sa.Column("total_stories", sa.Integer(), nullable=False),
        sa.Column("completed_stories", sa.Integer(), nullable=False),
        sa.Column("impediments_count", sa.Integer(), nullable=False),
        sa.Column("is_final_measurement", sa.Boolean(), nullable=False),
        sa.Column("measurement_date", sa.DateTime(), nullable=False),
        sa.Column("recorded_by", sa.String(length=255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["sprint_id"], ["sprints.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "sprint_id", "is_final_measurement", name="uq_sprint_velocity_measurement"
        ),
    )
    _index("sprint_velocities", "id")
    _index("sprint_velocities", "project_id")

    op.create_table(
        "timesheets",
        *_base_columns(),
        sa.Column("tenant_id", sa.Uuid(), nullable=True, comment="ID организации"),
        sa.Column("user_email", sa.String(length=255), nullable=False, comment="Email автора записи"),
        sa.Column("project_id", sa.Uuid(), nullable=True, comment="ID проекта"),
        sa.Column("task_id", sa.Uuid(), nullable=True, comment="ID задачи"),
        sa.Column("date", sa.Date(), nullable=False, comment="Дата работы"),
        sa.Column("total_minutes", sa.Integer(), nullable=False, comment="Длительность в минутах"),
        sa.Column(
            "work_type",
            sa.String(length=50),
            nullable=True,
            comment="Вид работы (rework - переделка)",
        ),
        sa.Column("status", sa.String(length=20), nullable=False, comment="Статус согласования"),
        sa.PrimaryKeyConstraint("id"),
    )
    _index("timesheets", "id")
    _index("timesheets", "tenant_id")
    _index("timesheets", "user_email")
    _index("timesheets", "project_id")
    _index("timesheets", "date")
    _index("timesheets", "status")

    op.create_table(
        "user_timesheets",
        *_base_columns(),
        sa.Column("tenant_id", sa.Uuid(), nullable=True),
        sa.Column("user_id", sa.Uuid(), nullable=True),
        sa.Column("user_email", sa.String(length=255), nullable=False),
        sa.Column("timesheet_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("work_type", sa.String(length=50), nullable=True),
        sa.Column(
            "total_time_submitted_in_day",
            sa.Integer(),
            nullable=False,
            comment="Всего минут за день",
        ),
        sa.Column(
            "rework_time_in_day",
            sa.Integer(),
            nullable=False,
            comment="Минут переделок за день",
        ),
        sa.Column(
            "actual_date",
            sa.DateTime(),
            nullable=True,
            comment="Момент последнего пересчета (UTC)",
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_email", "timesheet_date", name="uq_user_timesheet_day"),
    )
    _index("user_timesheets", "id")

    op.create_table(
        "notifications",
        *_base_columns(),
        sa.Column("tenant_id", sa.String(length=64), nullable=True, comment="ID организации"),
        sa.Column("recipient_email", sa.String(length=255), nullable=False, comment="Email получателя"),
        sa.Column("user_id", sa.Uuid(), nullable=True, comment="ID получателя"),
        sa.Column("type", sa.String(length=64), nullable=False, comment="Тег правила"),
        sa.Column("category", sa.String(length=20), nullable=False),
        sa.Column("rule_id", sa.String(length=64), nullable=True),
        sa.Column("scope", sa.String(length=20), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, comment="OPEN / RESOLVED"),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("entity_type", sa.String(length=32), nullable=True),
        sa.Column("entity_id", sa.Uuid(), nullable=True),
        sa.Column("project_id", sa.Uuid(), nullable=True),
        sa.Column("link", sa.String(length=500), nullable=True),
        sa.Column("sender_name", sa.String(length=100), nullable=False),
        sa.Column("read", sa.Boolean(), nullable=False),
        sa.Column(
            "open_key",
            sa.String(length=512),
            nullable=True,
            comment="Ключ уникальности OPEN-уведомления",
        ),
        sa.Column("data", sa.JSON(), nullable=True, comment="Дополнительные данные правила"),
        sa.Column("created_date", sa.DateTime(), nullable=False),
        sa.Column("updated_date", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("open_key"),
    )
    _index("notifications", "id")
    _index("notifications", "tenant_id")
    _index("notifications", "user_id")
    _index("notifications", "entity_id")
    _index("notifications", "created_date")
    op.create_index(
        "ix_notifications_recipient_type_status",
        "notifications",
        ["recipient_email", "type", "status"],
        unique=False,
    )


def downgrade() -> None:
    """Drop all alert engine tables"""
    op.drop_index("ix_notifications_recipient_type_status", table_name="notifications")
    for table in (
        "notifications",
        "user_timesheets",
        "timesheets",
        "sprint_velocities",
        "tasks",
        "stories",
        "sprints",
        "project_user_roles",
        "projects",
        "users",
        "tenant_subscriptions",
        "tenants",
    ):
        op.drop_table(table)
