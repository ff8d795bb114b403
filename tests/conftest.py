"""
Конфигурация pytest для тестов движка оповещений

Каждый тест получает собственную SQLite базу (aiosqlite) в tmp_path,
схема создается из метаданных моделей.
"""

from datetime import datetime
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy.future import select

from alert_engine.core.database import build_engine, build_session_factory
from alert_engine.models.base import Base
from alert_engine.services.email_service import EmailService

# Фиксированный момент запуска заданий: среда, 12:00 UTC
FIXED_NOW = datetime(2026, 3, 18, 12, 0)

TEST_TIMEZONE = "UTC"


@pytest.fixture
def now() -> datetime:
    """Момент запуска задания"""
    return FIXED_NOW


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """Тестовый движок на файле SQLite"""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'alerts.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    """Сессия базы данных для теста"""
    async with build_session_factory(db_engine)() as session:
        yield session


@pytest.fixture
def email_service():
    """Email-сервис без реальной отправки"""
    service = AsyncMock(spec=EmailService)
    service.send_templated_email.return_value = True
    return service


@pytest.fixture
def persist(db_session):
    """Сохранение объектов в базе"""

    async def _persist(*objects):
        db_session.add_all(objects)
        await db_session.commit()
        return objects[0] if len(objects) == 1 else objects

    return _persist


@pytest.fixture
def fetch(db_session):
    """Выборка свежих значений из базы (в обход identity map)"""

    async def _fetch(model, *conditions, order_by=None):
        query = select(model).where(*conditions).execution_options(populate_existing=True)
        if order_by is not None:
            query = query.order_by(order_by)
        result = await db_session.execute(query)
        return list(result.scalars().all())

    return _fetch


@pytest.fixture
def make_job(db_session, now, email_service):
    """Создание задания с фиксированным временем и тестовым email-сервисом"""

    def _make(job_cls, **kwargs):
        kwargs.setdefault("now", now)
        kwargs.setdefault("email_service", email_service)
        kwargs.setdefault("tz_name", TEST_TIMEZONE)
        return job_cls(db_session, **kwargs)

    return _make
