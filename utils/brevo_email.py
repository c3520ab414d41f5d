from __future__ import annotations

from typing import Optional

import requests

from utils.mail import EmailDeliveryError


BREVO_SEND_URL = "https://api.brevo.com/v3/smtp/email"


class BrevoMailer:
    """Sends through the Brevo transactional email API."""

    def __init__(self, *, api_key: str, from_email: str, from_name: str, timeout: int = 15) -> None:
        self.api_key = api_key
        self.from_email = from_email
        self.from_name = from_name
        self.timeout = timeout

    def send(self, *, to_email: str, subject: str, html: str, text: Optional[str] = None) -> None:
        payload = {
            "sender": {"email": self.from_email, "name": self.from_name},
            "to": [{"email": to_email}],
            "subject": subject,
            "htmlContent": html,
        }
        if text:
            payload["textContent"] = text

        try:
            resp = requests.post(
                BREVO_SEND_URL,
                headers={
                    "accept": "application/json",
                    "api-key": self.api_key,
                    "content-type": "application/json",
                },
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise EmailDeliveryError(f"Brevo request failed: {e}") from e
        if resp.status_code >= 300:
            raise EmailDeliveryError(f"Brevo send failed ({resp.status_code}): {resp.text}")
