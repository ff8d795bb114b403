"""Отправка уведомлений: дедупликация, запись в хранилище и письмо."""

import logging
import uuid
from datetime import datetime
from typing import Any

from alert_engine.core.constants import DEFAULT_TENANT_ID, SYSTEM_SENDER_NAME
from alert_engine.exceptions import StoreError
from alert_engine.models.notification import (
    Notification,
    NotificationStatus,
    RuleTag,
    build_open_key,
    get_rule,
)
from alert_engine.models.user import User
from alert_engine.schemas.notification import (
    DedupStrategy,
    DispatchOutcome,
    DispatchResult,
    NotificationDraft,
    PendingEmail,
    SubjectRef,
)
from alert_engine.services.dedup import DedupAction, DedupController
from alert_engine.services.email_service import EmailService
from alert_engine.services.entity_store import EntityStore

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Сервис отправки уведомлений."""

    def __init__(
        self,
        store: EntityStore,
        dedup: DedupController,
        email_service: EmailService | None = None,
    ):
        self.store = store
        self.dedup = dedup
        self.email_service = email_service or EmailService()

    async def dispatch(
        self,
        recipient: User,
        tag: RuleTag,
        subject: SubjectRef | None,
        draft: NotificationDraft,
        now: datetime,
        force: bool = False,
        tenant_id: Any = None,
        data: dict[str, Any] | None = None,
    ) -> DispatchResult:
        """
        Отправка уведомления получателю.

        Для новых уведомлений правил с шаблоном возвращает письмо,
        которое вызывающий отправляет после фиксации транзакции.
        """
        rule = get_rule(tag)
        tag = RuleTag(tag)
        entity_id = subject.entity_id if subject else None

        decision = await self.dedup.decide(recipient.email, tag, entity_id, now, force=force)

        if decision.action == DedupAction.SUPPRESS:
            existing = decision.existing
            return DispatchResult(
                outcome=DispatchOutcome.SUPPRESSED,
                notification_id=existing.id if existing else None,
                reason="cooldown",
            )

        content = {
            "title": draft.title,
            "message": draft.message,
            "link": draft.link,
            "read": False,
            "data": data,
            "created_date": now,
            "updated_date": now,
        }

        if decision.action == DedupAction.REFRESH:
            existing = decision.existing
            if existing is None:
                raise StoreError(
                    "Нет OPEN-уведомления для обновления",
                    model="Notification",
                    operation="refresh",
                )
            await self.store.update(Notification, existing.id, content)
            return DispatchResult(
                outcome=DispatchOutcome.UPDATED, notification_id=existing.id
            )

        identity = {
            "tenant_id": str(tenant_id or recipient.tenant_id or DEFAULT_TENANT_ID),
            "recipient_email": recipient.email.lower(),
            "user_id": recipient.id,
            "type": tag.value,
            "category": draft.category or rule.category,
            "rule_id": draft.rule_id or rule.rule_id,
            "scope": rule.scope,
            "status": NotificationStatus.OPEN,
            "entity_type": subject.entity_type if subject else None,
            "entity_id": entity_id,
            "project_id": subject.project_id if subject else None,
            "sender_name": SYSTEM_SENDER_NAME,
        }

        if rule.strategy == DedupStrategy.OPEN:
            new_id = uuid.uuid4()
            notification = await self.store.upsert(
                Notification,
                match={"open_key": build_open_key(recipient.email, tag, entity_id)},
                set_fields=content,
                insert_only={"id": new_id, **identity},
            )
            # Параллельный запуск успел создать запись с тем же ключом
            outcome = (
                DispatchOutcome.CREATED
                if notification.id == new_id
                else DispatchOutcome.UPDATED
            )
        else:
            notification = Notification(**identity, **content)
            self.store.db.add(notification)
            outcome = DispatchOutcome.CREATED

        await self.store.db.flush()

        email = None
        if outcome == DispatchOutcome.CREATED and rule.email_template:
            email = PendingEmail(
                to=recipient.email,
                template_key=rule.email_template,
                data=draft.email_data,
            )

        return DispatchResult(
            outcome=outcome, notification_id=notification.id, email=email
        )

    async def deliver(self, email: PendingEmail) -> bool:
        """
        Отправка письма по уже зафиксированному уведомлению.

        Ошибка отправки логируется и не пробрасывается.
        """
        try:
            return await self.email_service.send_templated_email(
                email.to, email.template_key, email.data
            )
        except Exception:
            logger.exception(
                f"Непредвиденная ошибка отправки письма '{email.template_key}' для {email.to}",
                extra={"recipient": email.to, "template": email.template_key},
            )
            return False
