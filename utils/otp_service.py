from __future__ import annotations

import logging
import secrets
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from config import Settings, get_settings
from utils.mail import EmailDeliveryError, Mailer, build_mailer, render_otp_email
from utils.otp_store import OtpRecord, OtpStore, build_otp_store

logger = logging.getLogger(__name__)


MSG_NOT_FOUND = "No OTP found for this email"
MSG_EXPIRED = "OTP has expired"
MSG_INVALID = "Invalid OTP code"

CODE_MIN = 100000
CODE_MAX = 999999


class OtpError(RuntimeError):
    pass


class InvalidArgumentError(OtpError):
    pass


class OtpDeliveryError(OtpError):
    pass


@dataclass(frozen=True)
class VerifyResult:
    success: bool
    message: Optional[str] = None


def generate_code() -> str:
    return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))


def normalize_email(email: Any) -> str:
    """Store key for an address. Mail still goes to the address as given."""
    return str(email or "").strip().lower()


def secrets_equal(a: str, b: str) -> bool:
    return secrets.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


class OtpService:
    def __init__(
        self,
        *,
        store: OtpStore,
        mailer: Mailer,
        ttl_seconds: int = 300,
        app_name: str = "MarketSafe",
        clock: Callable[[], float] = time.time,
        code_factory: Callable[[], str] = generate_code,
    ) -> None:
        self.store = store
        self.mailer = mailer
        self.ttl_seconds = ttl_seconds
        self.app_name = app_name
        self.clock = clock
        self.code_factory = code_factory

    def issue(self, email: Any) -> str:
        """
        Issue a fresh code for `email`, replacing any outstanding one, and
        mail it. Returns the code. One send attempt, no retry; on delivery
        failure the stored record is left in place.
        """
        to_email = str(email or "").strip()
        email = normalize_email(to_email)
        if not email:
            raise InvalidArgumentError("Email is required")

        code = self.code_factory()
        self.store.put(OtpRecord(email=email, code=code, expires_at=self.clock() + self.ttl_seconds))

        msg = render_otp_email(code=code, app_name=self.app_name, exp_minutes=self.ttl_seconds // 60)
        try:
            self.mailer.send(to_email=to_email, subject=msg.subject, html=msg.html, text=msg.text)
        except EmailDeliveryError as e:
            logger.exception("Error sending OTP email to %s", to_email)
            raise OtpDeliveryError("Failed to send email") from e

        logger.info("OTP sent to %s", to_email)
        return code

    def verify(self, email: Any, code: Any) -> VerifyResult:
        email = normalize_email(email)
        code = str(code if code is not None else "").strip()
        if not email or not code:
            raise InvalidArgumentError("Email and code are required")

        record = self.store.get(email)
        if record is None:
            return VerifyResult(False, MSG_NOT_FOUND)

        # Expired from the expiry instant itself, not only after it.
        if self.clock() >= record.expires_at:
            self.store.delete(email)
            logger.info("OTP for %s expired", email)
            return VerifyResult(False, MSG_EXPIRED)

        # Mismatch keeps the record; retries are allowed until expiry.
        if not secrets_equal(record.code, code):
            return VerifyResult(False, MSG_INVALID)

        self.store.delete(email)
        logger.info("OTP verified for %s", email)
        return VerifyResult(True)


_service: Optional[OtpService] = None
_service_lock = threading.Lock()


def build_otp_service(settings: Settings) -> OtpService:
    return OtpService(
        store=build_otp_store(settings),
        mailer=build_mailer(settings),
        ttl_seconds=settings.otp_ttl_seconds,
        app_name=settings.app_name,
    )


def get_otp_service() -> OtpService:
    """Process-wide service; its store lives as long as the process."""
    global _service
    if _service is None:
        with _service_lock:
            if _service is None:
                _service = build_otp_service(get_settings())
    return _service


def otp_issue(*, email: str) -> str:
    return get_otp_service().issue(email)


def otp_verify(*, email: str, code: str) -> VerifyResult:
    return get_otp_service().verify(email, code)
