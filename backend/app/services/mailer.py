"""Verification mail over SMTP (Gmail app password)."""
from __future__ import annotations
import asyncio
import logging
import smtplib
import ssl
from email.message import EmailMessage

from app.exceptions import MisconfigurationError

logger = logging.getLogger(__name__)

VERIFICATION_SUBJECT = "Подтверждение регистрации Neo Movies"

VERIFICATION_TEMPLATE = """<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h1 style="color: #2196f3;">Neo Movies</h1>
  <p>Здравствуйте!</p>
  <p>Для завершения регистрации введите этот код:</p>
  <div style="background: #f5f5f5; padding: 20px; text-align: center; font-size: 32px; letter-spacing: 8px; margin: 20px 0;">
    <strong>{code}</strong>
  </div>
  <p>Код действителен в течение {minutes} минут.</p>
  <p>Если вы не регистрировались на нашем сайте, просто проигнорируйте это письмо.</p>
</div>"""


class Mailer:
    def __init__(
        self,
        user: str,
        app_password: str,
        host: str = "smtp.gmail.com",
        port: int = 465,
        timeout: float = 10,
        code_minutes: int = 10,
    ):
        self.user = user
        self.app_password = app_password
        self.host = host
        self.port = port
        self.timeout = timeout
        self.code_minutes = code_minutes

    @property
    def configured(self) -> bool:
        return bool(self.user and self.app_password)

    def build_message(self, to: str, subject: str, body_html: str) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.user
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content("Please use an HTML-capable mail client.")
        msg.add_alternative(body_html, subtype="html")
        return msg

    def _send_sync(self, msg: EmailMessage):
        context = ssl.create_default_context()
        with smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout, context=context) as smtp:
            smtp.login(self.user, self.app_password)
            smtp.send_message(msg)

    async def send(self, to: str, subject: str, body_html: str):
        if not self.configured:
            raise MisconfigurationError("GMAIL_USER")
        msg = self.build_message(to, subject, body_html)
        await asyncio.to_thread(self._send_sync, msg)
        logger.info(f"Mail '{subject}' sent")

    async def send_verification(self, to: str, code: str):
        body = VERIFICATION_TEMPLATE.format(code=code, minutes=self.code_minutes)
        await self.send(to, VERIFICATION_SUBJECT, body)
