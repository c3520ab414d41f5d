from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

from config import Settings


class EmailDeliveryError(RuntimeError):
    pass


class Mailer(Protocol):
    def send(self, *, to_email: str, subject: str, html: str, text: Optional[str] = None) -> None:
        ...


@dataclass(frozen=True)
class OtpEmail:
    subject: str
    text: str
    html: str


def render_otp_email(*, code: str, app_name: str, exp_minutes: int) -> OtpEmail:
    subject = f"{app_name} Verification Code"
    text = (
        f"Your verification code is: {code}\n\n"
        f"This code will expire in {exp_minutes} minutes."
    )
    html = f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
      <h2 style="color: #d32f2f;">{subject}</h2>
      <p>Your verification code is:</p>
      <div style="background-color: #f5f5f5; padding: 20px; text-align: center; margin: 20px 0;">
        <h1 style="color: #d32f2f; font-size: 32px; margin: 0; letter-spacing: 5px;">{code}</h1>
      </div>
      <p>This code will expire in {exp_minutes} minutes.</p>
      <p>If you didn't request this code, please ignore this email.</p>
    </div>
    """
    return OtpEmail(subject=subject, text=text, html=html)


def build_mailer(settings: Settings) -> Mailer:
    if not settings.email_from:
        raise RuntimeError("EMAIL_FROM (or SMTP_USER) is not set")

    provider = settings.email_provider
    if provider == "smtp":
        from utils.smtp_email import SmtpMailer

        if not (settings.smtp_user and settings.smtp_password):
            raise RuntimeError("EMAIL_PROVIDER=smtp requires SMTP_USER and SMTP_PASSWORD")
        return SmtpMailer(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_user,
            password=settings.smtp_password,
            from_email=settings.email_from,
            from_name=settings.email_from_name,
            use_ssl=settings.smtp_use_ssl,
            timeout=settings.email_timeout,
        )
    if provider == "brevo":
        from utils.brevo_email import BrevoMailer

        if not settings.brevo_api_key:
            raise RuntimeError("BREVO_API_KEY is not set")
        return BrevoMailer(
            api_key=settings.brevo_api_key,
            from_email=settings.email_from,
            from_name=settings.email_from_name,
            timeout=settings.email_timeout,
        )
    raise RuntimeError(f"Unknown EMAIL_PROVIDER {provider!r} (expected smtp or brevo)")
