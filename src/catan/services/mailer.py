# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Outbound mail. Callers treat it as fire-and-forget."""

from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from typing import Optional

import anyio

from catan.errors import InvalidArgument, Unexpected
from catan.settings import Settings

logger = logging.getLogger(__name__)


class Mailer:
    def __init__(
        self,
        host: str,
        port: int = 587,
        *,
        secure: bool = False,
        user: str = "",
        password: str = "",
        sender: str = "no-reply@example.com",
    ) -> None:
        self._host = host
        self._port = port
        self._secure = secure
        self._user = user
        self._password = password
        self._sender = sender

    @classmethod
    def from_settings(cls, settings: Settings) -> "Mailer":
        return cls(
            settings.smtp_host,
            settings.smtp_port,
            secure=settings.smtp_secure,
            user=settings.smtp_user,
            password=settings.smtp_password,
            sender=settings.mail_from,
        )

    def _build(self, to: str, subject: str, text: Optional[str], html: Optional[str]) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self._sender
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(text or "")
        if html:
            msg.add_alternative(html, subtype="html")
        return msg

    def _deliver(self, msg: EmailMessage) -> None:
        # secure=True means implicit TLS (port 465); otherwise upgrade with STARTTLS.
        if self._secure:
            server = smtplib.SMTP_SSL(self._host, self._port, timeout=30)
        else:
            server = smtplib.SMTP(self._host, self._port, timeout=30)
        with server:
            if not self._secure:
                server.starttls()
            if self._user:
                server.login(self._user, self._password)
            server.send_message(msg)

    async def send_mail(
        self,
        to: str,
        subject: str,
        text: Optional[str] = None,
        html: Optional[str] = None,
    ) -> None:
        if not to or not subject or (not text and not html):
            raise InvalidArgument("To, subject, and either text or html content are required")

        msg = self._build(to, subject, text, html)
        try:
            await anyio.to_thread.run_sync(self._deliver, msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Error sending email to %s: %s", to, e)
            raise Unexpected("Error sending email") from e
        logger.info("Email sent to %s (%s)", to, subject)


async def send_welcome(mailer: Mailer, account_id: int, username: str, email: str) -> None:
    """Background task: a mail failure must never reach the signup response."""
    try:
        await mailer.send_mail(
            email,
            "Welcome to Catan",
            text=f"Hi {username},\n\nYour account is ready. See you at the table!\n",
        )
    except Unexpected:
        logger.warning("Welcome email for account %s not delivered", account_id)
