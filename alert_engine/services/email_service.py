"""
Отправка писем оповещений.

Транспорт: SMTP (если заданы хост, пользователь и пароль), иначе HTTP API Resend
(если задан ключ), иначе письмо только логируется.
"""

import asyncio
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any

import httpx

from alert_engine.core.config import Settings, settings
from alert_engine.exceptions import EmailDeliveryError
from alert_engine.services.email_templates import EmailContent, render_template

logger = logging.getLogger(__name__)


class EmailService:
    """Сервис отправки писем."""

    def __init__(self, config: Settings | None = None):
        self.config = config or settings

    @property
    def transport(self) -> str:
        """Выбранный транспорт: smtp, resend или noop"""
        if self.config.smtp_configured:
            return "smtp"
        if self.config.RESEND_API_KEY:
            return "resend"
        return "noop"

    def _build_message(self, to: str, content: EmailContent) -> MIMEMultipart:
        message = MIMEMultipart("alternative")
        message["Subject"] = content.subject
        message["From"] = self.config.sender
        message["To"] = to
        message.attach(MIMEText(content.text, "plain", "utf-8"))
        message.attach(MIMEText(content.html, "html", "utf-8"))
        return message

    def _send_smtp_sync(self, to: str, content: EmailContent) -> None:
        message = self._build_message(to, content)
        with smtplib.SMTP(
            self.config.SMTP_HOST,
            self.config.SMTP_PORT,
            timeout=self.config.EMAIL_TIMEOUT_SECONDS,
        ) as server:
            if self.config.SMTP_USE_TLS:
                server.starttls()
            server.login(self.config.SMTP_USER, self.config.SMTP_PASSWORD)
            server.sendmail(self.config.EMAILS_FROM_EMAIL, [to], message.as_string())

    async def _send_smtp(self, to: str, content: EmailContent) -> None:
        try:
            await asyncio.to_thread(self._send_smtp_sync, to, content)
        except (smtplib.SMTPException, OSError) as exc:
            raise EmailDeliveryError(
                f"SMTP отправка не удалась: {exc}", recipient=to, transport="smtp"
            ) from exc

    async def _send_resend(self, to: str, content: EmailContent) -> None:
        payload = {
            "from": self.config.sender,
            "to": [to],
            "subject": content.subject,
            "html": content.html,
            "text": content.text,
        }
        headers = {
            "Authorization": f"Bearer {self.config.RESEND_API_KEY}",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(
                timeout=self.config.EMAIL_TIMEOUT_SECONDS
            ) as client:
                response = await client.post(
                    self.config.RESEND_API_URL, json=payload, headers=headers
                )
        except httpx.HTTPError as exc:
            raise EmailDeliveryError(
                f"Resend недоступен: {exc}", recipient=to, transport="resend"
            ) from exc

        if response.status_code >= 400:
            raise EmailDeliveryError(
                f"Resend ответил {response.status_code}: {response.text[:200]}",
                recipient=to,
                transport="resend",
            )

    async def send_templated_email(
        self, to: str, template_key: str, data: dict[str, Any]
    ) -> bool:
        """
        Отправка письма по шаблону

        Args:
            to: Адрес получателя
            template_key: Ключ шаблона
            data: Данные шаблона

        Returns:
            bool: True если письмо передано транспорту (без транспорта - False)
        """
        try:
            content = render_template(template_key, data)
        except (KeyError, ValueError, TypeError) as exc:
            logger.error(
                f"Не удалось сформировать письмо '{template_key}' для {to}: {exc}",
                extra={"recipient": to, "template": template_key},
            )
            return False

        transport = self.transport
        if transport == "noop":
            logger.info(
                f"Email-транспорт не настроен, письмо '{content.subject}' для {to} не отправлено",
                extra={"recipient": to, "template": template_key},
            )
            return False

        try:
            if transport == "smtp":
                await self._send_smtp(to, content)
            else:
                await self._send_resend(to, content)
        except EmailDeliveryError as exc:
            logger.error(
                f"Ошибка отправки письма '{template_key}' для {to}: {exc.message}",
                extra={
                    "recipient": to,
                    "template": template_key,
                    "error_code": exc.error_code,
                    "error_details": exc.details,
                },
            )
            return False

        logger.info(
            f"Письмо '{content.subject}' отправлено {to} через {transport}",
            extra={"recipient": to, "template": template_key, "transport": transport},
        )
        return True
