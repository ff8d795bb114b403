"""
Контроль дубликатов и окон подавления уведомлений.

OPEN-стратегия: на (получатель, тег, субъект) не более одного OPEN-уведомления,
повтор обновляет существующее. Оконная стратегия: любое уведомление
(получатель, тег) в окне подавляет новое.
"""

import logging
import uuid
from collections.abc import Collection, Iterable
from datetime import datetime
from enum import Enum

from sqlalchemy import desc

from alert_engine.core.timeutils import start_of_local_day
from alert_engine.models.notification import (
    Notification,
    NotificationStatus,
    RuleTag,
    get_rule,
)
from alert_engine.schemas.notification import DedupStrategy, RuleDefinition
from alert_engine.services.entity_store import EntityStore

logger = logging.getLogger(__name__)

OpenKey = tuple[str, uuid.UUID | None]


class DedupAction(str, Enum):
    """Решение контроллера"""

    CREATE = "create"
    REFRESH = "refresh"
    SUPPRESS = "suppress"


class DedupDecision:
    """Решение и найденное уведомление (для REFRESH и SUPPRESS)"""

    def __init__(
        self, action: DedupAction, existing: Notification | None = None
    ) -> None:
        self.action = action
        self.existing = existing

    def __repr__(self) -> str:
        return f"<DedupDecision(action={self.action.value})>"


class DedupController:
    """Контроллер дедупликации уведомлений."""

    def __init__(self, store: EntityStore, tz_name: str | None = None):
        self.store = store
        self.tz_name = tz_name

    def window_start(self, rule: RuleDefinition, now: datetime) -> datetime:
        """Начало окна подавления правила"""
        if rule.since_local_day:
            return start_of_local_day(now, self.tz_name)
        if rule.cooldown is not None:
            return now - rule.cooldown
        return now

    async def find_open(
        self, recipient_email: str, tag: RuleTag, entity_id: uuid.UUID | None
    ) -> list[Notification]:
        """OPEN-уведомления ключа, от новых к старым"""
        return await self.store.find(
            Notification,
            Notification.recipient_email == recipient_email.lower(),
            Notification.type == RuleTag(tag).value,
            Notification.status == NotificationStatus.OPEN,
            Notification.entity_id == entity_id
            if entity_id is not None
            else Notification.entity_id.is_(None),
            order_by=desc(Notification.created_date),
        )

    async def find_in_window(
        self,
        recipient_email: str,
        tag: RuleTag,
        since: datetime,
        entity_id: uuid.UUID | None = None,
    ) -> Notification | None:
        """Последнее уведомление (получатель, тег[, субъект]) созданное после since"""
        conditions = [
            Notification.recipient_email == recipient_email.lower(),
            Notification.type == RuleTag(tag).value,
            Notification.created_date >= since,
        ]
        if entity_id is not None:
            conditions.append(Notification.entity_id == entity_id)
        return await self.store.find_one(
            Notification, *conditions, order_by=desc(Notification.created_date)
        )

    async def has_recent(
        self, recipient_email: str, tags: Iterable[str], since: datetime
    ) -> bool:
        """Есть ли уведомление с любым из тегов после since"""
        found = await self.store.find_one(
            Notification,
            Notification.recipient_email == recipient_email.lower(),
            Notification.type.in_(list(tags)),
            Notification.created_date >= since,
        )
        return found is not None

    async def decide(
        self,
        recipient_email: str,
        tag: RuleTag,
        entity_id: uuid.UUID | None,
        now: datetime,
        force: bool = False,
    ) -> DedupDecision:
        """
        Решение для попытки отправки.

        force обходит только оконное подавление.
        """
        rule = get_rule(tag)

        if rule.strategy == DedupStrategy.OPEN:
            existing = await self.find_open(recipient_email, tag, entity_id)
            if not existing:
                return DedupDecision(DedupAction.CREATE)
            if len(existing) > 1:
                logger.warning(
                    f"Нарушение целостности: {len(existing)} OPEN-уведомлений "
                    f"{RuleTag(tag).value} для {recipient_email}, обновляется последнее",
                    extra={
                        "rule_tag": RuleTag(tag).value,
                        "recipient": recipient_email,
                        "entity_id": str(entity_id) if entity_id else None,
                        "notification_ids": [str(n.id) for n in existing],
                    },
                )
            return DedupDecision(DedupAction.REFRESH, existing[0])

        if force:
            return DedupDecision(DedupAction.CREATE)

        since = self.window_start(rule, now)
        recent = await self.find_in_window(
            recipient_email,
            tag,
            since,
            entity_id if rule.match_subject else None,
        )
        if recent is not None:
            return DedupDecision(DedupAction.SUPPRESS, recent)
        return DedupDecision(DedupAction.CREATE)

    async def _mark_resolved(self, notification: Notification, now: datetime) -> None:
        await self.store.update(
            Notification,
            notification.id,
            {
                "status": NotificationStatus.RESOLVED,
                "open_key": None,
                "updated_date": now,
            },
        )

    async def resolve(
        self,
        recipient_email: str,
        tag: RuleTag,
        entity_id: uuid.UUID | None,
        now: datetime,
    ) -> int:
        """Перевести OPEN-уведомления ключа в RESOLVED"""
        existing = await self.find_open(recipient_email, tag, entity_id)
        for notification in existing:
            await self._mark_resolved(notification, now)
        return len(existing)

    async def resolve_stale(
        self,
        tag: RuleTag,
        active_keys: Collection[OpenKey],
        now: datetime,
        skip_entities: Collection[uuid.UUID] = (),
    ) -> int:
        """
        Закрыть OPEN-уведомления тега, условие которых больше не выполняется.

        Ключи субъектов из skip_entities (ошибки обработки) не трогаются.
        """
        open_notifications = await self.store.find(
            Notification,
            Notification.type == RuleTag(tag).value,
            Notification.status == NotificationStatus.OPEN,
        )
        resolved = 0
        for notification in open_notifications:
            if notification.entity_id in skip_entities:
                continue
            key = (notification.recipient_email.lower(), notification.entity_id)
            if key in active_keys:
                continue
            await self._mark_resolved(notification, now)
            resolved += 1
        return resolved
