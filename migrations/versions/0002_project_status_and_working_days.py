"""Project status, deadline and user working days

Revision ID: 0002_project_status
Revises: 0001_initial
Create Date: 2026-10-18 10:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0002_project_status"
down_revision: str | None = "0001_initial"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Add project status and deadline, user working days"""
    op.add_column(
        "projects",
        sa.Column(
            "status",
            sa.String(length=20),
            server_default="active",
            nullable=False,
            comment="Статус проекта",
        ),
    )
    op.add_column(
        "projects",
        sa.Column("deadline", sa.Date(), nullable=True, comment="Плановый срок сдачи"),
    )
    op.create_index(op.f("ix_projects_status"), "projects", ["status"], unique=False)
    op.add_column(
        "users",
        sa.Column("working_days", sa.JSON(), nullable=True, comment="Рабочие дни недели"),
    )


def downgrade() -> None:
    """Drop project status and deadline, user working days"""
    op.drop_column("users", "working_days")
    op.drop_index(op.f("ix_projects_status"), table_name="projects")
    op.drop_column("projects", "deadline")
    op.drop_column("projects", "status")
