"""
Настройка базы данных и SQLAlchemy
"""

from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from alert_engine.core.config import settings


def _install_sqlite_savepoint_support(engine: AsyncEngine) -> None:
    """
    Включает корректные SAVEPOINT для pysqlite/aiosqlite

    Драйвер сам управляет транзакциями и ломает вложенные транзакции,
    поэтому BEGIN выдаем явно.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN")


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Создание асинхронного движка для заданного URL"""
    url = make_url(database_url)

    if url.get_backend_name() == "sqlite":
        engine = create_async_engine(database_url, echo=echo, future=True)
        _install_sqlite_savepoint_support(engine)
        return engine

    return create_async_engine(
        database_url,
        echo=echo,
        future=True,
        pool_pre_ping=True,
        pool_recycle=300,
        connect_args={
            "server_settings": {
                "application_name": "groona_alert_engine",
                "jit": "off",
            },
            "prepared_statement_cache_size": 0,
        },
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Фабрика сессий: объекты не истекают после commit"""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


# Движок создается лениво: задания создают его только при запуске
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """Глобальный движок процесса задания"""
    global _engine
    if _engine is None:
        _engine = build_engine(str(settings.DATABASE_URL), echo=settings.DEBUG)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Фабрика сессий глобального движка"""
    global _session_factory
    if _session_factory is None:
        _session_factory = build_session_factory(get_engine())
    return _session_factory


async def close_db() -> None:
    """Закрытие соединения с базой данных"""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
