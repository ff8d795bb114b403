"""
Тесты контроля дубликатов и окон подавления
"""

import logging
import uuid
from datetime import timedelta

import pytest

from alert_engine.models.notification import (
    Notification,
    NotificationStatus,
    RuleTag,
    build_open_key,
)
from alert_engine.services.dedup import DedupAction, DedupController
from alert_engine.services.entity_store import EntityStore
from tests.factories import NotificationFactory

EMAIL = "viewer@example.com"


@pytest.fixture
def dedup(db_session):
    return DedupController(EntityStore(db_session), tz_name="UTC")


class TestOpenStrategy:
    """Тесты OPEN-стратегии"""

    async def test_create_when_nothing_open(self, dedup, now):
        decision = await dedup.decide(EMAIL, RuleTag.TASK_OVERDUE, uuid.uuid4(), now)
        assert decision.action == DedupAction.CREATE

    async def test_refresh_existing(self, dedup, persist, now):
        """Открытое уведомление того же субъекта обновляется"""
        task_id = uuid.uuid4()
        existing = await persist(
            NotificationFactory(
                recipient_email=EMAIL,
                entity_id=task_id,
                open_key=build_open_key(EMAIL, RuleTag.TASK_OVERDUE, task_id),
            )
        )
        decision = await dedup.decide(EMAIL.upper(), RuleTag.TASK_OVERDUE, task_id, now)
        assert decision.action == DedupAction.REFRESH
        assert decision.existing.id == existing.id

    async def test_resolved_does_not_block(self, dedup, persist, now):
        task_id = uuid.uuid4()
        await persist(
            NotificationFactory(
                recipient_email=EMAIL, entity_id=task_id, status=NotificationStatus.RESOLVED
            )
        )
        decision = await dedup.decide(EMAIL, RuleTag.TASK_OVERDUE, task_id, now)
        assert decision.action == DedupAction.CREATE

    async def test_duplicates_refresh_latest_and_warn(self, dedup, persist, now, caplog):
        """Несколько OPEN-уведомлений: обновляется последнее, пишется предупреждение"""
        task_id = uuid.uuid4()
        older = NotificationFactory(recipient_email=EMAIL, entity_id=task_id, created_date=now - timedelta(days=2))
        newer = NotificationFactory(recipient_email=EMAIL, entity_id=task_id, created_date=now - timedelta(days=1))
        await persist(older, newer)

        with caplog.at_level(logging.WARNING, logger="alert_engine.services.dedup"):
            decision = await dedup.decide(EMAIL, RuleTag.TASK_OVERDUE, task_id, now)

        assert decision.existing.id == newer.id
        assert "Нарушение целостности" in caplog.text

    async def test_force_does_not_bypass_open(self, dedup, persist, now):
        task_id = uuid.uuid4()
        await persist(NotificationFactory(recipient_email=EMAIL, entity_id=task_id))
        decision = await dedup.decide(EMAIL, RuleTag.TASK_OVERDUE, task_id, now, force=True)
        assert decision.action == DedupAction.REFRESH


class TestWindowStrategy:
    """Тесты оконной стратегии"""

    @pytest.mark.parametrize(
        "age, action",
        [
            (timedelta(hours=23, minutes=59), DedupAction.SUPPRESS),
            (timedelta(hours=24), DedupAction.SUPPRESS),
            (timedelta(hours=24, minutes=1), DedupAction.CREATE),
        ],
    )
    async def test_cooldown_boundary(self, dedup, persist, now, age, action):
        """Окно 24 часа включает свою границу"""
        sprint_id = uuid.uuid4()
        await persist(
            NotificationFactory(
                recipient_email=EMAIL,
                type=RuleTag.SPRINT_OVERDUE_TASKS.value,
                entity_id=sprint_id,
                created_date=now - age,
            )
        )
        decision = await dedup.decide(EMAIL, RuleTag.SPRINT_OVERDUE_TASKS, sprint_id, now)
        assert decision.action == action

    async def test_subject_match_for_sprint(self, dedup, persist, now):
        """Тревога по другому спринту не подавляется"""
        await persist(
            NotificationFactory(
                recipient_email=EMAIL,
                type=RuleTag.SPRINT_OVERDUE_TASKS.value,
                entity_id=uuid.uuid4(),
                created_date=now - timedelta(hours=1),
            )
        )
        decision = await dedup.decide(EMAIL, RuleTag.SPRINT_OVERDUE_TASKS, uuid.uuid4(), now)
        assert decision.action == DedupAction.CREATE

    async def test_force_bypasses_window(self, dedup, persist, now):
        sprint_id = uuid.uuid4()
        await persist(
            NotificationFactory(
                recipient_email=EMAIL,
                type=RuleTag.SPRINT_OVERDUE_TASKS.value,
                entity_id=sprint_id,
                created_date=now - timedelta(hours=1),
            )
        )
        decision = await dedup.decide(EMAIL, RuleTag.SPRINT_OVERDUE_TASKS, sprint_id, now, force=True)
        assert decision.action == DedupAction.CREATE

    @pytest.mark.parametrize(
        "age, action",
        [(timedelta(hours=17), DedupAction.SUPPRESS), (timedelta(hours=18), DedupAction.CREATE)],
    )
    async def test_local_day_window(self, db_session, persist, now, age, action):
        """Окно 'с начала суток' считается в локальной зоне (IST, UTC+5:30)"""
        dedup = DedupController(EntityStore(db_session), tz_name="Asia/Kolkata")
        await persist(
            NotificationFactory(
                recipient_email=EMAIL,
                type=RuleTag.CONTEXT_SWITCHING.value,
                created_date=now - age,
            )
        )
        decision = await dedup.decide(EMAIL, RuleTag.CONTEXT_SWITCHING, None, now)
        assert decision.action == action

    async def test_has_recent(self, dedup, persist, now):
        await persist(
            NotificationFactory(
                recipient_email=EMAIL,
                type="timesheet_lockout_alarm",
                created_date=now - timedelta(days=10),
            )
        )
        since = now - timedelta(days=30)
        assert await dedup.has_recent(EMAIL, ["timesheet_lockout_alarm"], since)
        assert not await dedup.has_recent(EMAIL, ["rework_alarm"], since)
        assert not await dedup.has_recent(EMAIL, ["timesheet_lockout_alarm"], now - timedelta(days=5))


class TestResolve:
    """Тесты закрытия уведомлений"""

    async def test_resolve_clears_open_key(self, dedup, persist, fetch, db_session, now):
        task_id = uuid.uuid4()
        notification = await persist(
            NotificationFactory(
                recipient_email=EMAIL,
                entity_id=task_id,
                open_key=build_open_key(EMAIL, RuleTag.TASK_OVERDUE, task_id),
            )
        )
        assert await dedup.resolve(EMAIL, RuleTag.TASK_OVERDUE, task_id, now) == 1
        await db_session.commit()

        [fresh] = await fetch(Notification, Notification.id == notification.id)
        assert fresh.status == NotificationStatus.RESOLVED
        assert fresh.open_key is None
        assert fresh.updated_date == now

    async def test_resolve_stale_keeps_active_and_failed(self, dedup, persist, fetch, db_session, now):
        """Активные ключи и субъекты с ошибкой обработки остаются открытыми"""
        active, stale, failed = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
        await persist(
            NotificationFactory(recipient_email=EMAIL, entity_id=active),
            NotificationFactory(recipient_email=EMAIL, entity_id=stale),
            NotificationFactory(recipient_email=EMAIL, entity_id=failed),
            NotificationFactory(recipient_email=EMAIL, entity_id=stale, type=RuleTag.TASK_ESCALATION.value),
        )

        resolved = await dedup.resolve_stale(
            RuleTag.TASK_OVERDUE, {(EMAIL, active)}, now, skip_entities={failed}
        )
        await db_session.commit()

        assert resolved == 1
        still_open = await fetch(Notification, Notification.status == NotificationStatus.OPEN)
        assert {(n.type, n.entity_id) for n in still_open} == {
            (RuleTag.TASK_OVERDUE.value, active),
            (RuleTag.TASK_OVERDUE.value, failed),
            (RuleTag.TASK_ESCALATION.value, stale),
        }
