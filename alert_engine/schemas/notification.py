"""
Схемы описания правил и результатов отправки уведомлений
"""

import uuid
from datetime import timedelta
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class DedupStrategy(str, Enum):
    """Стратегия подавления повторов"""

    # Одно OPEN-уведомление на (получатель, тег, субъект), обновляется на месте
    OPEN = "open"
    # Любое уведомление (получатель, тег) в окне подавляет новое
    WINDOW = "window"


class RuleDefinition(BaseModel):
    """Описание правила: категория, дедупликация, шаблон письма"""

    model_config = ConfigDict(frozen=True)

    category: str = Field(..., description="Категория уведомления в UI")
    rule_id: str = Field(..., description="Идентификатор бизнес-правила")
    scope: str = Field(default="user", description="Область действия")
    entity_type: str | None = Field(default=None, description="Тип субъекта")
    strategy: DedupStrategy = Field(..., description="Стратегия подавления")
    cooldown: timedelta | None = Field(
        default=None, description="Скользящее окно подавления"
    )
    since_local_day: bool = Field(
        default=False, description="Окно начинается с локальной полуночи"
    )
    match_subject: bool = Field(
        default=False, description="Учитывать субъект при поиске в окне"
    )
    email_template: str | None = Field(
        default=None, description="Ключ шаблона письма (None - без письма)"
    )


class SubjectRef(BaseModel):
    """Ссылка на субъект уведомления"""

    model_config = ConfigDict(frozen=True)

    entity_type: str
    entity_id: uuid.UUID
    project_id: uuid.UUID | None = None


class DispatchOutcome(str, Enum):
    """Итог попытки отправки"""

    CREATED = "created"
    UPDATED = "updated"
    SUPPRESSED = "suppressed"


class PendingEmail(BaseModel):
    """Письмо по новому уведомлению, отправляется после фиксации записи"""

    model_config = ConfigDict(frozen=True)

    to: str
    template_key: str
    data: dict[str, Any] = Field(default_factory=dict)


class DispatchResult(BaseModel):
    """Результат отправки уведомления"""

    outcome: DispatchOutcome
    notification_id: uuid.UUID | None = None
    email: PendingEmail | None = None
    reason: str | None = None

    @property
    def delivered(self) -> bool:
        """Было ли уведомление записано"""
        return self.outcome != DispatchOutcome.SUPPRESSED


class NotificationDraft(BaseModel):
    """Содержимое уведомления до проверки дедупликации"""

    title: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)
    link: str | None = None
    rule_id: str | None = Field(
        default=None, description="Переопределяет rule_id из описания правила"
    )
    category: str | None = Field(
        default=None, description="Переопределяет категорию из описания правила"
    )
    email_data: dict[str, Any] = Field(default_factory=dict)
