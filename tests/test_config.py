"""
Тесты конфигурации и работы со временем
"""

from datetime import date, datetime

import pytest

from alert_engine.core import database
from alert_engine.core.config import Settings, get_settings, settings
from alert_engine.core.timeutils import (
    get_local_zone,
    local_week_bounds,
    start_of_iso_week,
    start_of_local_day,
    to_local,
)
from alert_engine.exceptions import ConfigurationError


class TestSettings:
    """Тесты настроек"""

    def test_get_settings_returns_instance(self):
        assert get_settings() is settings

    def test_database_url_assembled_from_parts(self):
        """URL базы собирается из частей, если не задан явно"""
        config = Settings(
            POSTGRES_USER="alerts",
            POSTGRES_PASSWORD="secret",
            POSTGRES_HOST="db",
            POSTGRES_PORT=6543,
            POSTGRES_DB="groona",
            DATABASE_URL=None,
        )
        assert config.DATABASE_URL == "postgresql+asyncpg://alerts:secret@db:6543/groona"

    def test_explicit_database_url_kept(self):
        config = Settings(DATABASE_URL="sqlite+aiosqlite:///alerts.db")
        assert config.DATABASE_URL == "sqlite+aiosqlite:///alerts.db"

    def test_log_level_normalized(self):
        assert Settings(LOG_LEVEL=" debug ").LOG_LEVEL == "DEBUG"

    def test_smtp_configured_requires_all_parts(self):
        assert not Settings(SMTP_HOST="smtp.example.com", SMTP_USER=None, SMTP_PASSWORD=None).smtp_configured
        assert Settings(SMTP_HOST="smtp.example.com", SMTP_USER="u", SMTP_PASSWORD="p").smtp_configured

    def test_sender(self):
        config = Settings(EMAILS_FROM_NAME="Groona", EMAILS_FROM_EMAIL="alerts@groona.app")
        assert config.sender == "Groona <alerts@groona.app>"


class TestTimeUtils:
    """Тесты границ суток и недель"""

    NOW = datetime(2026, 3, 18, 12, 0)

    def test_unknown_timezone(self):
        with pytest.raises(ConfigurationError) as exc_info:
            get_local_zone("Mars/Olympus_Mons")
        assert exc_info.value.setting == "TIMEZONE"

    def test_start_of_local_day_utc(self):
        assert start_of_local_day(self.NOW, "UTC") == datetime(2026, 3, 18)

    def test_start_of_local_day_ahead_of_utc(self):
        """Полночь IST (UTC+5:30) - 18:30 UTC предыдущего дня"""
        assert start_of_local_day(self.NOW, "Asia/Kolkata") == datetime(2026, 3, 17, 18, 30)

    def test_to_local_crosses_date(self):
        assert to_local(datetime(2026, 3, 18, 20, 0), "Asia/Kolkata").date() == date(2026, 3, 19)

    def test_week_bounds(self):
        assert start_of_iso_week(date(2026, 3, 22)) == date(2026, 3, 16)
        assert local_week_bounds(self.NOW, "UTC") == (datetime(2026, 3, 16), datetime(2026, 3, 23))


class TestDatabase:
    """Тесты глобального движка и фабрики сессий"""

    async def test_session_factory_cached_until_close(self, monkeypatch, tmp_path):
        monkeypatch.setattr(settings, "DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'jobs.db'}")
        await database.close_db()

        factory = database.get_session_factory()
        assert database.get_session_factory() is factory
        assert factory.kw["bind"] is database.get_engine()
        assert factory.kw["expire_on_commit"] is False

        await database.close_db()
        assert database.get_session_factory() is not factory
        await database.close_db()
