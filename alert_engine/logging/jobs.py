"""
Конфигурация логирования для заданий правил.

- Человекочитаемый вывод в stderr
- Структурированный контекст через extra
- Разные уровни для разных событий
"""

import logging
import sys
from typing import Any
from uuid import UUID

from alert_engine.exceptions import AlertEngineError

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str = "INFO") -> None:
    """Настройка корневого логгера процесса задания (однократно)."""
    root = logging.getLogger()
    if not any(getattr(h, "_alert_engine", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        handler._alert_engine = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    root.setLevel(level)
    # SQL-логи только в режиме отладки SQLAlchemy
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def _str_or_none(value: UUID | str | None) -> str | None:
    return str(value) if value else None


class JobLogger:
    """Специализированный логгер задания правила."""

    def __init__(self, job_name: str) -> None:
        self.job_name = job_name
        self.logger = logging.getLogger(f"alert_engine.jobs.{job_name}")

    def _context(self, **fields: Any) -> dict[str, Any]:
        return {"job": self.job_name, **fields}

    def info(self, message: str, **fields: Any) -> None:
        self.logger.info(message, extra=self._context(**fields))

    def debug(self, message: str, **fields: Any) -> None:
        self.logger.debug(message, extra=self._context(**fields))

    def log_job_started(self, scope_size: int) -> None:
        """Логирование начала прохода."""
        self.logger.info(
            f"Задание {self.job_name}: к обработке {scope_size} элементов",
            extra=self._context(scope_size=scope_size),
        )

    def log_job_finished(
        self, processed: int, failed: int, created: int, updated: int, suppressed: int
    ) -> None:
        """Логирование итогов прохода."""
        context = self._context(
            processed=processed,
            failed=failed,
            created_count=created,
            updated_count=updated,
            suppressed_count=suppressed,
        )
        self.logger.info(
            f"Задание {self.job_name} завершено: обработано {processed}, ошибок {failed}, "
            f"создано {created}, обновлено {updated}, подавлено {suppressed}",
            extra=context,
        )

    def log_scope_failed(self, error: BaseException) -> None:
        """Логирование фатальной ошибки получения области."""
        context = self._context(error=str(error))
        if isinstance(error, AlertEngineError):
            context["error_code"] = error.error_code
            context["error_details"] = error.details
        self.logger.error(
            f"Задание {self.job_name}: не удалось получить область обработки: {error}",
            extra=context,
        )

    def log_item_failed(self, item_ref: str) -> None:
        """Логирование ошибки элемента (с трассировкой), элемент пропускается."""
        self.logger.exception(
            f"Ошибка обработки элемента {item_ref}, пропускаем",
            extra=self._context(item=item_ref),
        )

    def log_dispatch(
        self,
        outcome: str,
        rule_tag: str,
        recipient: str,
        entity_id: UUID | None = None,
    ) -> None:
        """Логирование результата отправки уведомления."""
        context = self._context(
            outcome=outcome,
            rule_tag=rule_tag,
            recipient=recipient,
            entity_id=_str_or_none(entity_id),
        )
        self.logger.info(
            f"Уведомление {rule_tag} для {recipient}: {outcome}", extra=context
        )

    def log_no_recipients(self, rule_tag: str, subject_ref: str) -> None:
        """Логирование отсутствия получателей."""
        context = self._context(rule_tag=rule_tag, subject=subject_ref)
        self.logger.warning(
            f"Нет получателей для {rule_tag} ({subject_ref}), уведомление не отправлено",
            extra=context,
        )

    def log_skipped(self, reason: str, item_ref: str) -> None:
        """Логирование пропуска элемента без ошибки."""
        self.logger.info(
            f"Пропуск {item_ref}: {reason}",
            extra=self._context(item=item_ref, reason=reason),
        )
