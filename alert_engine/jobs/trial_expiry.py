"""
Окончание пробного периода.

Организация переводится в suspended / past_due, сводка подписки
синхронизируется, администраторы получают уведомление и письмо.
Ошибка синхронизации сводки логируется и не отменяет перевод организации.
"""

import logging
import sys
from collections.abc import Sequence

from alert_engine.core.config import settings
from alert_engine.jobs.base import RuleJob, run_job_main
from alert_engine.models.notification import RuleTag
from alert_engine.models.tenant import (
    SubscriptionStatus,
    Tenant,
    TenantStatus,
    TenantSubscription,
)
from alert_engine.models.user import User
from alert_engine.schemas.notification import NotificationDraft, SubjectRef

logger = logging.getLogger(__name__)

BILLING_LINK = "/Billing"


class TrialExpiryJob(RuleJob[Tenant]):
    """Приостановка организаций с истекшим пробным периодом."""

    name = "trial_expiry"
    description = "Приостановка организаций с истекшим пробным периодом"

    async def fetch_scope(self) -> Sequence[Tenant]:
        return await self.store.find(
            Tenant,
            Tenant.status == TenantStatus.TRIAL,
            Tenant.trial_ends_at.is_not(None),
            Tenant.trial_ends_at < self.now,
            order_by=Tenant.trial_ends_at,
        )

    def describe_item(self, item: Tenant) -> str:
        return f"организация {item.id} '{item.name}'"

    async def process_item(self, item: Tenant) -> None:
        note = f"Trial expired on {self.now.isoformat()}. Suspended automatically."
        await self.store.update(
            Tenant,
            item.id,
            {
                "status": TenantStatus.SUSPENDED,
                "subscription_status": SubscriptionStatus.PAST_DUE,
                "internal_notes": item.append_note(note),
            },
        )
        self.log.info(f"Организация {item.name} приостановлена", tenant_id=str(item.id))

        await self._sync_subscription(item)
        await self._notify_admins(item)

    async def _sync_subscription(self, tenant: Tenant) -> None:
        """Синхронизация сводки подписки (upsert по tenant_id)"""
        try:
            async with self.db.begin_nested():
                await self.store.upsert(
                    TenantSubscription,
                    match={"tenant_id": tenant.id},
                    set_fields={
                        "status": SubscriptionStatus.PAST_DUE,
                        "trial_ends_at": tenant.trial_ends_at,
                        "plan_name": tenant.subscription_plan,
                        "subscription_type": tenant.subscription_type,
                        "start_date": tenant.subscription_start_date,
                        "end_date": tenant.subscription_ends_at,
                        "max_users": tenant.max_users,
                        "max_projects": tenant.max_projects,
                        "max_workspaces": tenant.max_workspaces,
                        "max_storage_gb": tenant.max_storage_gb,
                    },
                )
        except Exception:
            logger.exception(
                f"Не удалось синхронизировать сводку подписки организации {tenant.name}",
                extra={"tenant_id": str(tenant.id)},
            )

    async def _recipients(self, tenant: Tenant) -> list[User]:
        admins = await self.resolver.tenant_admins(tenant.id)
        if admins or not tenant.owner_email:
            return admins
        owner = await self.store.find_one(User, User.email == tenant.owner_email.lower())
        return [owner] if owner else []

    async def _notify_admins(self, tenant: Tenant) -> None:
        recipients = await self._recipients(tenant)
        if not recipients:
            self.log.log_no_recipients(RuleTag.TRIAL_EXPIRED.value, f"tenant {tenant.id}")
            return

        subject = SubjectRef(entity_type="tenant", entity_id=tenant.id)
        for user in recipients:
            draft = NotificationDraft(
                title="Your trial has expired",
                message=(
                    f"The trial period for {tenant.name} ended on "
                    f"{tenant.trial_ends_at.date().isoformat() if tenant.trial_ends_at else ''}. "
                    "Your workspace has been suspended. Renew your subscription to restore access."
                ),
                link=BILLING_LINK,
                email_data={
                    "user_name": user.display_name,
                    "user_email": user.email,
                    "plan_name": tenant.subscription_plan,
                    "expiry_date": tenant.trial_ends_at,
                    "renewal_url": f"{settings.FRONTEND_URL}{BILLING_LINK}",
                },
            )
            await self.notify(
                user, RuleTag.TRIAL_EXPIRED, subject, draft, tenant_id=tenant.id
            )


def main() -> None:
    sys.exit(run_job_main(TrialExpiryJob))


if __name__ == "__main__":
    main()
