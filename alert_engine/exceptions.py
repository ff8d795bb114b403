"""
Кастомные исключения движка оповещений.

Иерархия повторяет исключения аналитики: сообщение, код ошибки и детали.
"""

from typing import Any


class AlertEngineError(Exception):
    """Базовое исключение движка оповещений."""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}


class ScopeFetchError(AlertEngineError):
    """Не удалось получить область обработки задания (фатально, код выхода 1)."""

    def __init__(self, message: str, job: str | None = None) -> None:
        details = {}
        if job:
            details["job"] = job

        super().__init__(message=message, error_code="SCOPE_FETCH_FAILED", details=details)
        self.job = job


class StoreError(AlertEngineError):
    """Ошибка чтения или записи хранилища."""

    def __init__(
        self,
        message: str,
        model: str | None = None,
        operation: str | None = None,
    ) -> None:
        details = {}
        if model:
            details["model"] = model
        if operation:
            details["operation"] = operation

        super().__init__(message=message, error_code="STORE_ERROR", details=details)
        self.model = model
        self.operation = operation


class EmailDeliveryError(AlertEngineError):
    """Ошибка доставки письма."""

    def __init__(
        self,
        message: str,
        recipient: str | None = None,
        transport: str | None = None,
    ) -> None:
        details = {}
        if recipient:
            details["recipient"] = recipient
        if transport:
            details["transport"] = transport

        super().__init__(
            message=message, error_code="EMAIL_DELIVERY_FAILED", details=details
        )
        self.recipient = recipient
        self.transport = transport


class ConfigurationError(AlertEngineError):
    """Некорректная конфигурация."""

    def __init__(self, message: str, setting: str | None = None) -> None:
        details = {}
        if setting:
            details["setting"] = setting

        super().__init__(message=message, error_code="CONFIGURATION_ERROR", details=details)
        self.setting = setting
