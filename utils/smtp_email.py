from __future__ import annotations

import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from typing import Optional

from utils.mail import EmailDeliveryError


class SmtpMailer:
    """
    Plain SMTP account delivery (e.g. a Gmail app password).

    SSL on connect by default (port 465); with use_ssl=False the session is
    upgraded with STARTTLS instead (port 587).
    """

    def __init__(
        self,
        *,
        host: str,
        port: int,
        username: str,
        password: str,
        from_email: str,
        from_name: str = "",
        use_ssl: bool = True,
        timeout: int = 15,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_email = from_email
        self.from_name = from_name
        self.use_ssl = use_ssl
        self.timeout = timeout

    def _connect(self) -> smtplib.SMTP:
        if self.use_ssl:
            return smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
        server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        server.starttls()
        return server

    def send(self, *, to_email: str, subject: str, html: str, text: Optional[str] = None) -> None:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = formataddr((self.from_name, self.from_email)) if self.from_name else self.from_email
        msg["To"] = to_email
        msg.set_content(text or "")
        msg.add_alternative(html, subtype="html")

        try:
            with self._connect() as server:
                server.login(self.username, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise EmailDeliveryError(f"SMTP send failed: {e}") from e
