"""
Конфигурация движка оповещений
"""

from typing import Any

import pydantic
from pydantic import Field, PostgresDsn, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Основные настройки движка"""

    # Application
    PROJECT_NAME: str = "Groona Alert Engine"
    VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "groona"
    DATABASE_URL: str | None = Field(default=None, validate_default=True)

    @field_validator("DATABASE_URL", mode="before")
    @classmethod
    def assemble_db_connection(
        cls, v: str | None, info: pydantic.ValidationInfo
    ) -> Any:
        """Сборка URL базы данных из частей, если он не задан явно"""
        if isinstance(v, str) and v:
            return v
        values = info.data or {}
        return str(
            PostgresDsn.build(
                scheme="postgresql+asyncpg",
                username=values.get("POSTGRES_USER", "postgres"),
                password=values.get("POSTGRES_PASSWORD", "postgres"),
                host=values.get("POSTGRES_HOST", "localhost"),
                port=int(values.get("POSTGRES_PORT", 5432)),
                path=values.get("POSTGRES_DB", "groona"),
            )
        )

    # Локальное время для границ суток ("с начала сегодняшнего дня", 18:00)
    TIMEZONE: str = "UTC"

    # Ссылки в письмах
    FRONTEND_URL: str = "http://localhost:5173"

    # Email: SMTP (основной транспорт)
    SMTP_HOST: str | None = None
    SMTP_PORT: int = 587
    SMTP_USER: str | None = None
    SMTP_PASSWORD: str | None = None
    SMTP_USE_TLS: bool = True
    EMAILS_FROM_EMAIL: str = "no-reply@groona.app"
    EMAILS_FROM_NAME: str = "Groona"

    # Email: Resend HTTP API (запасной транспорт)
    RESEND_API_KEY: str | None = None
    RESEND_API_URL: str = "https://api.resend.com/emails"
    EMAIL_TIMEOUT_SECONDS: float = 10.0

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Уровень логирования в верхнем регистре"""
        if isinstance(v, str):
            return v.strip().upper()
        raise ValueError(v)

    @property
    def smtp_configured(self) -> bool:
        """Заданы ли все параметры SMTP"""
        return bool(self.SMTP_HOST and self.SMTP_USER and self.SMTP_PASSWORD)

    @property
    def sender(self) -> str:
        """Отправитель писем в формате 'Имя <email>'"""
        return f"{self.EMAILS_FROM_NAME} <{self.EMAILS_FROM_EMAIL}>"

    model_config = {"extra": "ignore", "env_file": ".env", "case_sensitive": True}


# Создание экземпляра настроек
settings = Settings()


def get_settings() -> Settings:
    """Получить экземпляр настроек"""
    return settings
