"""
Тесты хранилища сущностей
"""

import uuid
from datetime import date

import pytest

from alert_engine.exceptions import StoreError
from alert_engine.models.timesheet import UserTimesheet
from alert_engine.models.user import User, UserRole
from alert_engine.services.entity_store import EntityStore
from tests.factories import UserFactory


class TestEntityStore:
    """Тесты чтения и записи"""

    @pytest.fixture
    def store(self, db_session):
        return EntityStore(db_session)

    async def test_find_with_order_and_limit(self, store, persist):
        """Выборка с сортировкой и лимитом"""
        await persist(
            UserFactory(email="b@example.com"),
            UserFactory(email="a@example.com"),
            UserFactory(email="c@example.com", role=UserRole.ADMIN),
        )

        members = await store.find(User, User.role == UserRole.MEMBER, order_by=User.email)
        assert [u.email for u in members] == ["a@example.com", "b@example.com"]

        first = await store.find_one(User, order_by=User.email.desc())
        assert first.email == "c@example.com"

    async def test_find_in_skips_empty(self, store, persist):
        user = await persist(UserFactory())
        assert await store.find_in(User, User.id, []) == []
        assert await store.find_in(User, User.id, [None]) == []
        found = await store.find_in(User, User.id, [user.id, user.id])
        assert [u.id for u in found] == [user.id]

    async def test_update_fields(self, store, persist, fetch):
        """Точечное обновление полей"""
        user = await persist(UserFactory(full_name="Old Name"))
        await store.update(User, user.id, {"full_name": "New Name"})
        await store.db.commit()

        [fresh] = await fetch(User, User.id == user.id)
        assert fresh.full_name == "New Name"

    async def test_update_missing_record(self, store):
        """Обновление несуществующей записи - ошибка хранилища"""
        with pytest.raises(StoreError) as exc_info:
            await store.update(User, uuid.uuid4(), {"full_name": "Ghost"})
        assert exc_info.value.details == {"model": "User", "operation": "update"}

    async def test_upsert_insert_then_update(self, store, fetch):
        """Повторный upsert по ключу обновляет ту же запись"""
        match = {"user_email": "dev@example.com", "timesheet_date": date(2026, 3, 17)}
        first = await store.upsert(
            UserTimesheet,
            match=match,
            set_fields={"status": "draft", "total_time_submitted_in_day": 120},
            insert_only={"work_type": "development"},
        )
        second = await store.upsert(
            UserTimesheet,
            match=match,
            set_fields={"status": "submitted", "total_time_submitted_in_day": 480},
            insert_only={"work_type": "rework"},
        )
        await store.db.commit()

        assert second.id == first.id
        rows = await fetch(UserTimesheet)
        assert len(rows) == 1
        assert rows[0].status == "submitted"
        assert rows[0].total_time_submitted_in_day == 480
        assert rows[0].work_type == "development"
