"""
Базовое задание правила и точка входа процесса.

Проход задания: получить область, обработать каждый элемент в своей
точке сохранения (ошибка элемента логируется и пропускается), затем finalize.
Код выхода 0 при успехе (в том числе "нечего делать"), 1 при ошибке области.
"""

import argparse
import asyncio
import logging
import uuid
from collections.abc import Sequence
from datetime import datetime
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from alert_engine.core.config import settings
from alert_engine.core.database import close_db, get_session_factory
from alert_engine.core.timeutils import utcnow
from alert_engine.exceptions import ScopeFetchError
from alert_engine.logging.jobs import JobLogger, configure_logging
from alert_engine.models.notification import RuleTag
from alert_engine.models.user import User
from alert_engine.schemas.notification import (
    DispatchOutcome,
    DispatchResult,
    NotificationDraft,
    PendingEmail,
    SubjectRef,
)
from alert_engine.services.dedup import DedupController
from alert_engine.services.dispatcher import NotificationDispatcher
from alert_engine.services.email_service import EmailService
from alert_engine.services.entity_store import EntityStore
from alert_engine.services.recipient_resolver import RecipientResolver

logger = logging.getLogger(__name__)

ItemT = TypeVar("ItemT")

EXIT_OK = 0
EXIT_SCOPE_FAILURE = 1


class JobReport(BaseModel):
    """Итоги прохода задания"""

    scope_size: int = 0
    processed: int = 0
    failed: int = 0
    created: int = 0
    updated: int = 0
    suppressed: int = 0
    resolved: int = 0
    emails_sent: int = 0

    def record(self, result: DispatchResult) -> None:
        if result.outcome == DispatchOutcome.CREATED:
            self.created += 1
        elif result.outcome == DispatchOutcome.UPDATED:
            self.updated += 1
        else:
            self.suppressed += 1

    def merge(self, other: "JobReport") -> None:
        """Добавить итоги зафиксированного элемента"""
        self.created += other.created
        self.updated += other.updated
        self.suppressed += other.suppressed
        self.resolved += other.resolved


class RuleJob(Generic[ItemT]):
    """Базовый класс задания правила."""

    name: ClassVar[str] = "rule"
    description: ClassVar[str] = ""
    supports_force: ClassVar[bool] = False

    def __init__(
        self,
        db: AsyncSession,
        now: datetime | None = None,
        email_service: EmailService | None = None,
        tz_name: str | None = None,
        force: bool = False,
    ):
        self.db = db
        self.now = now or utcnow()
        self.tz_name = tz_name
        self.force = force and self.supports_force
        self.store = EntityStore(db)
        self.resolver = RecipientResolver(self.store)
        self.dedup = DedupController(self.store, tz_name)
        self.dispatcher = NotificationDispatcher(self.store, self.dedup, email_service)
        self.log = JobLogger(self.name)
        self.report = JobReport()
        # Итоги текущего элемента, в общий отчет попадают после фиксации
        self.tally = self.report
        self.outbox: list[PendingEmail] = []
        # Субъекты с ошибкой обработки: их уведомления finalize не закрывает
        self.failed_subjects: set[uuid.UUID] = set()

    async def fetch_scope(self) -> Sequence[ItemT]:
        raise NotImplementedError

    async def process_item(self, item: ItemT) -> None:
        raise NotImplementedError

    async def finalize(self) -> None:
        """Закрытие уведомлений, условие которых больше не выполняется."""

    def describe_item(self, item: ItemT) -> str:
        return repr(item)

    def item_subject_id(self, item: ItemT) -> uuid.UUID | None:
        return getattr(item, "id", None)

    async def _load_scope(self) -> Sequence[ItemT]:
        try:
            return await self.fetch_scope()
        except ScopeFetchError:
            raise
        except Exception as exc:
            raise ScopeFetchError(
                f"Не удалось получить область обработки: {exc}", job=self.name
            ) from exc

    async def run(self) -> JobReport:
        """
        Полный проход задания

        Raises:
            ScopeFetchError: Область обработки недоступна
        """
        scope = await self._load_scope()
        self.report.scope_size = len(scope)
        self.log.log_job_started(len(scope))

        for item in scope:
            item_ref = self.describe_item(item)
            subject_id = self.item_subject_id(item)
            tally = self.tally = JobReport()
            outbox = self.outbox = []
            try:
                async with self.db.begin_nested():
                    await self.process_item(item)
            except Exception:
                self.report.failed += 1
                if subject_id is not None:
                    self.failed_subjects.add(subject_id)
                self.log.log_item_failed(item_ref)
                outbox.clear()
            else:
                self.report.processed += 1
                self.report.merge(tally)
            finally:
                self.tally = self.report
                self.outbox = []
            await self.db.commit()
            await self._deliver(outbox)

        await self.finalize()
        await self.db.commit()
        await self._deliver(self.outbox)
        self.outbox = []

        self.log.log_job_finished(
            processed=self.report.processed,
            failed=self.report.failed,
            created=self.report.created,
            updated=self.report.updated,
            suppressed=self.report.suppressed,
        )
        return self.report

    async def _deliver(self, emails: Sequence[PendingEmail]) -> None:
        """Письма по уведомлениям, запись которых уже зафиксирована"""
        for email in emails:
            if await self.dispatcher.deliver(email):
                self.report.emails_sent += 1

    async def notify(
        self,
        recipient: User,
        tag: RuleTag,
        subject: SubjectRef | None,
        draft: NotificationDraft,
        **kwargs: Any,
    ) -> DispatchResult:
        """Отправка уведомления с учетом итогов и логированием"""
        result = await self.dispatcher.dispatch(
            recipient, tag, subject, draft, self.now, force=self.force, **kwargs
        )
        self.tally.record(result)
        if result.email is not None:
            self.outbox.append(result.email)
        self.log.log_dispatch(
            result.outcome.value,
            RuleTag(tag).value,
            recipient.email,
            subject.entity_id if subject else None,
        )
        return result


def build_parser(job_cls: type[RuleJob]) -> argparse.ArgumentParser:
    """Парсер аргументов задания (--force только для поддерживающих его правил)"""
    parser = argparse.ArgumentParser(
        prog=f"alert-{job_cls.name.replace('_', '-')}",
        description=job_cls.description or job_cls.name,
    )
    if job_cls.supports_force:
        parser.add_argument(
            "--force",
            action="store_true",
            help="Игнорировать окно подавления (ручная проверка)",
        )
    return parser


async def _run_job(job_cls: type[RuleJob], force: bool) -> JobReport:
    try:
        async with get_session_factory()() as session:
            job = job_cls(session, force=force, tz_name=settings.TIMEZONE)
            return await job.run()
    finally:
        await close_db()


def run_job_main(job_cls: type[RuleJob], argv: Sequence[str] | None = None) -> int:
    """
    Точка входа процесса задания

    Returns:
        int: Код выхода
    """
    args = build_parser(job_cls).parse_args(argv)
    configure_logging(settings.LOG_LEVEL)

    try:
        asyncio.run(_run_job(job_cls, getattr(args, "force", False)))
    except ScopeFetchError as exc:
        JobLogger(job_cls.name).log_scope_failed(exc)
        return EXIT_SCOPE_FAILURE
    except Exception:
        logger.exception(f"Задание {job_cls.name} завершилось с ошибкой")
        return EXIT_SCOPE_FAILURE
    return EXIT_OK
