"""
Тесты кастомных исключений
"""

import pytest

from alert_engine.exceptions import (
    AlertEngineError,
    ConfigurationError,
    EmailDeliveryError,
    ScopeFetchError,
    StoreError,
)


class TestAlertEngineError:
    """Тесты базового исключения"""

    def test_defaults(self):
        error = AlertEngineError("Что-то пошло не так")
        assert str(error) == "Что-то пошло не так"
        assert error.message == "Что-то пошло не так"
        assert error.error_code is None
        assert error.details == {}

    def test_with_code_and_details(self):
        error = AlertEngineError("Ошибка", error_code="CUSTOM", details={"key": "value"})
        assert error.error_code == "CUSTOM"
        assert error.details == {"key": "value"}


class TestSpecificErrors:
    """Тесты специализированных исключений"""

    @pytest.mark.parametrize(
        "error, code, details",
        [
            (ScopeFetchError("Нет области", job="task_overdue"), "SCOPE_FETCH_FAILED", {"job": "task_overdue"}),
            (
                StoreError("Нет записи", model="User", operation="update"),
                "STORE_ERROR",
                {"model": "User", "operation": "update"},
            ),
            (
                EmailDeliveryError("Не отправлено", recipient="pm@example.com", transport="smtp"),
                "EMAIL_DELIVERY_FAILED",
                {"recipient": "pm@example.com", "transport": "smtp"},
            ),
            (ConfigurationError("Плохая зона", setting="TIMEZONE"), "CONFIGURATION_ERROR", {"setting": "TIMEZONE"}),
        ],
    )
    def test_error_codes(self, error, code, details):
        assert isinstance(error, AlertEngineError)
        assert error.error_code == code
        assert error.details == details

    def test_optional_details_omitted(self):
        assert ScopeFetchError("Нет области").details == {}
        assert StoreError("Ошибка").details == {}
