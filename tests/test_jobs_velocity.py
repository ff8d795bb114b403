"""
Тесты заданий по скорости спринтов
"""

from datetime import date, datetime, timedelta

import pytest_asyncio

from alert_engine.jobs.low_velocity import LowVelocityJob
from alert_engine.jobs.sprint_velocity_sync import SprintVelocitySyncJob
from alert_engine.models.notification import Notification, RuleTag
from alert_engine.models.project import ProjectRole
from alert_engine.models.sprint import SprintStatus, SprintVelocity
from alert_engine.services.entity_store import EntityStore
from alert_engine.services.velocity_service import VelocityService
from tests.factories import (
    ProjectFactory,
    ProjectUserRoleFactory,
    SprintFactory,
    SprintVelocityFactory,
    StoryFactory,
    TaskFactory,
    UserFactory,
)


@pytest_asyncio.fixture
async def project(persist):
    """Проект с менеджером"""
    pm = UserFactory(email="pm@example.com", full_name="Pat Manager")
    project = ProjectFactory(name="Apollo")
    await persist(pm, project)
    await persist(ProjectUserRoleFactory.for_user(project, pm))
    return project


async def sprint_with_work(persist, project, **kwargs):
    """Спринт: закрытая история на 5 очков и история на 3 очка с половиной задач"""
    sprint = SprintFactory(project_id=project.id, **kwargs)
    done = StoryFactory(sprint_id=sprint.id, project_id=project.id, story_points=5, status="done")
    partial = StoryFactory(sprint_id=sprint.id, project_id=project.id, story_points=3)
    await persist(
        sprint,
        done,
        partial,
        TaskFactory(story_id=partial.id, status="completed"),
        TaskFactory(story_id=partial.id, status="in_progress"),
    )
    return sprint


class TestSprintVelocitySyncJob:
    """Тесты синхронизации замеров скорости"""

    async def test_final_and_interim_measurements(self, persist, make_job, fetch, project, now):
        completed = await sprint_with_work(persist, project, name="Done sprint", status=SprintStatus.COMPLETED)
        locked = await sprint_with_work(
            persist, project, name="Locked sprint", locked_date=now - timedelta(days=3)
        )
        await sprint_with_work(persist, project, name="Draft sprint", status=SprintStatus.DRAFT)

        report = await make_job(SprintVelocitySyncJob).run()
        await make_job(SprintVelocitySyncJob, now=now + timedelta(hours=1)).run()

        assert report.scope_size == 2
        records = {r.sprint_id: r for r in await fetch(SprintVelocity)}
        assert set(records) == {completed.id, locked.id}

        final = records[completed.id]
        assert final.is_final_measurement
        assert final.committed_points == 8
        assert final.completed_points == 6.5
        assert final.velocity_percentage == 81.25
        assert final.completed_stories == 1
        assert final.total_tasks == 2
        assert final.recorded_by == "pm@example.com"
        assert final.measurement_date == now + timedelta(hours=1)
        assert not records[locked.id].is_final_measurement

    async def test_on_task_saved(self, db_session, persist, project, now):
        """Сохранение задачи пересчитывает замер спринта ее истории"""
        sprint = SprintFactory(project_id=project.id, status=SprintStatus.COMPLETED, committed_points=10)
        story = StoryFactory(sprint_id=sprint.id, story_points=4)
        task = TaskFactory(story_id=story.id, status="completed")
        loose = TaskFactory()
        await persist(sprint, story, task, loose)

        service = VelocityService(EntityStore(db_session))
        record = await service.on_task_saved(task, now)

        assert record.velocity_percentage == 40
        assert await service.on_task_saved(loose, now) is None


class TestLowVelocityJob:
    """Тесты оповещений о низкой скорости"""

    async def add_history(self, persist, project, velocities):
        """Замеры от старых спринтов к новым"""
        sprints = []
        for index, velocity in enumerate(velocities):
            sprint = SprintFactory(project_id=project.id, name=f"{project.name} S{index + 1}")
            record = SprintVelocityFactory(
                project_id=project.id,
                sprint_id=sprint.id,
                sprint_name=sprint.name,
                sprint_end_date=date(2026, 2, 1) + timedelta(days=14 * index),
                velocity_percentage=velocity,
                measurement_date=datetime(2026, 2, 1) + timedelta(days=14 * index),
            )
            await persist(sprint, record)
            sprints.append(sprint)
        return sprints

    async def test_consistent_drop_alarm(self, persist, make_job, fetch, email_service, project):
        sprints = await self.add_history(persist, project, [95, 80, 70])

        await make_job(LowVelocityJob).run()

        [alarm] = await fetch(Notification)
        assert alarm.type == RuleTag.CONSISTENT_VELOCITY_DROP.value
        assert alarm.category == "alarm"
        assert alarm.entity_id == sprints[-1].id
        assert alarm.data == {"sprint_id": str(sprints[-1].id)}
        assert "Latest: 70.0%, Previous: 80.0%" in alarm.message

        to, template, data = email_service.send_templated_email.call_args.args
        assert (to, template) == ("pm@example.com", "consistent_velocity_drop")
        assert data["previous_sprint_name"] == "Apollo S2"

    async def test_single_drop_warning_for_project_admins(self, persist, make_job, fetch, email_service):
        """Без менеджеров предупреждение получают администраторы проекта"""
        admin = UserFactory(email="project-admin@example.com")
        project = ProjectFactory(name="Zephyr")
        await persist(admin, project)
        await persist(ProjectUserRoleFactory.for_user(project, admin, role=ProjectRole.ADMIN))
        await self.add_history(persist, project, [90, 60])

        await make_job(LowVelocityJob).run()

        [warning] = await fetch(Notification)
        assert warning.type == RuleTag.VELOCITY_DROP.value
        assert warning.recipient_email == "project-admin@example.com"
        assert "Latest: 60.0%" in warning.message
        email_service.send_templated_email.assert_not_awaited()

    async def test_first_sprint_drop_is_warning(self, persist, make_job, fetch, project):
        """Единственный замер ниже порога - предупреждение без сравнения"""
        await self.add_history(persist, project, [70])

        report = await make_job(LowVelocityJob).run()

        assert report.failed == 0
        [warning] = await fetch(Notification)
        assert warning.recipient_email == "pm@example.com"
        assert warning.type == RuleTag.VELOCITY_DROP.value
        assert "Latest: 70.0%" in warning.message

    async def test_healthy_and_repeat(self, persist, make_job, fetch, project, now):
        healthy = ProjectFactory(name="Healthy")
        await persist(healthy)
        await self.add_history(persist, healthy, [70, 95])
        await self.add_history(persist, project, [90, 60])

        first = await make_job(LowVelocityJob).run()
        repeat = await make_job(LowVelocityJob, now=now + timedelta(hours=2)).run()

        assert first.scope_size == 2
        assert first.created == 1
        assert repeat.suppressed == 1
        assert len(await fetch(Notification)) == 1
