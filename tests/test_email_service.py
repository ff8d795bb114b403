"""
Тесты отправки писем и шаблонов писем
"""

import logging
import smtplib
from datetime import date
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from alert_engine.core.config import Settings
from alert_engine.services.email_service import EmailService
from alert_engine.services.email_templates import TEMPLATES, render_template

ESCALATION_DATA = {
    "recipient_name": "Pat",
    "task_title": "Deploy <prod>",
    "project_name": "Apollo",
    "assignees": "dev@example.com",
    "days_overdue": 6,
    "task_url": "http://localhost:5173/ProjectDetail?id=1",
}


def smtp_settings(**overrides) -> Settings:
    values = {
        "SMTP_HOST": "smtp.example.com",
        "SMTP_USER": "mailer",
        "SMTP_PASSWORD": "secret",
        "RESEND_API_KEY": "re_test",
    }
    return Settings(**{**values, **overrides})


class TestTransportSelection:
    """Тесты выбора транспорта"""

    def test_smtp_preferred(self):
        assert EmailService(smtp_settings()).transport == "smtp"

    def test_resend_when_smtp_incomplete(self):
        assert EmailService(smtp_settings(SMTP_PASSWORD=None)).transport == "resend"

    def test_noop_without_configuration(self):
        config = smtp_settings(SMTP_HOST=None, RESEND_API_KEY=None)
        assert EmailService(config).transport == "noop"


class TestSendTemplatedEmail:
    """Тесты отправки писем"""

    async def test_noop_transport_logs_only(self, caplog):
        """Без транспорта письмо только логируется и не считается отправленным"""
        service = EmailService(smtp_settings(SMTP_HOST=None, RESEND_API_KEY=None))
        with caplog.at_level(logging.INFO, logger="alert_engine.services.email_service"):
            sent = await service.send_templated_email("pm@example.com", "task_escalation", ESCALATION_DATA)
        assert not sent
        assert "не отправлено" in caplog.text

    async def test_unknown_template(self):
        service = EmailService(smtp_settings())
        assert not await service.send_templated_email("pm@example.com", "unknown", {})

    async def test_smtp_delivery(self):
        service = EmailService(smtp_settings())
        with patch("alert_engine.services.email_service.smtplib.SMTP") as smtp_cls:
            server = smtp_cls.return_value.__enter__.return_value
            sent = await service.send_templated_email("pm@example.com", "task_escalation", ESCALATION_DATA)

        assert sent
        smtp_cls.assert_called_once_with("smtp.example.com", 587, timeout=10.0)
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("mailer", "secret")
        from_addr, to_addrs, message = server.sendmail.call_args.args
        assert from_addr == "no-reply@groona.app"
        assert to_addrs == ["pm@example.com"]
        assert "Subject:" in message

    async def test_smtp_failure_returns_false(self):
        service = EmailService(smtp_settings())
        with patch("alert_engine.services.email_service.smtplib.SMTP") as smtp_cls:
            smtp_cls.return_value.__enter__.return_value.login.side_effect = (
                smtplib.SMTPAuthenticationError(535, b"bad credentials")
            )
            assert not await service.send_templated_email(
                "pm@example.com", "task_escalation", ESCALATION_DATA
            )

    async def test_resend_delivery(self):
        service = EmailService(smtp_settings(SMTP_HOST=None))
        response = httpx.Response(200, json={"id": "email_1"})
        with patch.object(httpx.AsyncClient, "post", new=AsyncMock(return_value=response)) as post:
            sent = await service.send_templated_email("pm@example.com", "task_escalation", ESCALATION_DATA)

        assert sent
        url = post.call_args.args[0]
        payload = post.call_args.kwargs["json"]
        assert url == "https://api.resend.com/emails"
        assert payload["to"] == ["pm@example.com"]
        assert payload["from"] == "Groona <no-reply@groona.app>"
        assert post.call_args.kwargs["headers"]["Authorization"] == "Bearer re_test"

    @pytest.mark.parametrize(
        "outcome",
        [
            httpx.Response(500, text="internal error"),
            httpx.ConnectError("connection refused"),
        ],
    )
    async def test_resend_failure_returns_false(self, outcome):
        service = EmailService(smtp_settings(SMTP_HOST=None))
        mock = AsyncMock(side_effect=outcome) if isinstance(outcome, Exception) else AsyncMock(return_value=outcome)
        with patch.object(httpx.AsyncClient, "post", new=mock):
            assert not await service.send_templated_email(
                "pm@example.com", "task_escalation", ESCALATION_DATA
            )


class TestTemplates:
    """Тесты шаблонов писем"""

    def test_escalation_escapes_html(self):
        content = render_template("task_escalation", ESCALATION_DATA)
        assert content.subject == "🔥 Escalation: Task Overdue (6 Days) - Deploy <prod>"
        assert "Deploy &lt;prod&gt;" in content.html
        assert "Deploy <prod>" in content.text
        assert ESCALATION_DATA["task_url"] in content.text

    def test_timesheet_missing_formats_date(self):
        content = render_template(
            "timesheet_missing_alert", {"user_email": "dev@example.com", "missing_date": date(2026, 3, 10)}
        )
        assert content.subject == "🚨 Missing Timesheet Entry Required (2026-03-10)"
        assert "Hello, dev@example.com" in content.text

    @pytest.mark.parametrize("template_key", sorted(TEMPLATES))
    def test_every_template_renders_with_empty_data(self, template_key):
        """Отсутствующие поля не ломают шаблон"""
        content = render_template(template_key, {})
        assert content.subject
        assert content.html.startswith("<!DOCTYPE html>")

    def test_unknown_template(self):
        with pytest.raises(KeyError):
            render_template("missing", {})
