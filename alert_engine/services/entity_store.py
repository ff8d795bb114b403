"""Хранилище сущностей: чтение с фильтрами, точечные обновления и атомарный upsert."""

import uuid
from collections.abc import Iterable, Sequence
from typing import Any, TypeVar

from sqlalchemy import update as sa_update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from alert_engine.core.timeutils import utcnow
from alert_engine.exceptions import StoreError
from alert_engine.models.base import BaseModel

ModelT = TypeVar("ModelT", bound=BaseModel)

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class EntityStore:
    """Доступ к сущностям поверх асинхронной сессии."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find(
        self,
        model: type[ModelT],
        *conditions: Any,
        order_by: Sequence[Any] | Any | None = None,
        limit: int | None = None,
    ) -> list[ModelT]:
        """Выборка по условиям с сортировкой и лимитом."""
        query = select(model).where(*conditions)
        if order_by is not None:
            if isinstance(order_by, (list, tuple)):
                query = query.order_by(*order_by)
            else:
                query = query.order_by(order_by)
        if limit is not None:
            query = query.limit(limit)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def find_one(
        self,
        model: type[ModelT],
        *conditions: Any,
        order_by: Sequence[Any] | Any | None = None,
    ) -> ModelT | None:
        """Первая запись по условиям или None."""
        rows = await self.find(model, *conditions, order_by=order_by, limit=1)
        return rows[0] if rows else None

    async def find_in(
        self,
        model: type[ModelT],
        column: Any,
        values: Iterable[Any],
        *conditions: Any,
    ) -> list[ModelT]:
        """Выборка по вхождению значения колонки в набор."""
        values = list(dict.fromkeys(v for v in values if v is not None))
        if not values:
            return []
        return await self.find(model, column.in_(values), *conditions)

    async def get(self, model: type[ModelT], entity_id: uuid.UUID) -> ModelT | None:
        """Запись по первичному ключу."""
        return await self.db.get(model, entity_id)

    async def update(
        self, model: type[ModelT], entity_id: uuid.UUID, fields: dict[str, Any]
    ) -> None:
        """Точечное обновление полей записи."""
        values = {**fields}
        if "updated_at" not in values:
            values["updated_at"] = utcnow()
        result = await self.db.execute(
            sa_update(model)
            .where(model.id == entity_id)
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount == 0:
            raise StoreError(
                f"Запись {entity_id} не найдена",
                model=model.__name__,
                operation="update",
            )

    async def upsert(
        self,
        model: type[ModelT],
        match: dict[str, Any],
        set_fields: dict[str, Any],
        insert_only: dict[str, Any] | None = None,
    ) -> ModelT:
        """
        Атомарный upsert по уникальному ключу match.

        set_fields пишутся и при вставке, и при конфликте,
        insert_only - только при вставке.

        Raises:
            StoreError: Диалект не поддерживает INSERT .. ON CONFLICT
        """
        dialect = self.db.get_bind().dialect.name
        insert = _INSERT_BY_DIALECT.get(dialect)
        if insert is None:
            raise StoreError(
                f"Upsert не поддерживается для диалекта {dialect}",
                model=model.__name__,
                operation="upsert",
            )

        now = utcnow()
        on_conflict = {**set_fields}
        on_conflict.setdefault("updated_at", now)
        values = {
            "id": uuid.uuid4(),
            "created_at": now,
            **(insert_only or {}),
            **match,
            **on_conflict,
        }

        statement = (
            insert(model)
            .values(**values)
            .on_conflict_do_update(index_elements=list(match), set_=on_conflict)
            .returning(model)
        )
        result = await self.db.execute(
            statement, execution_options={"populate_existing": True}
        )
        return result.scalar_one()
